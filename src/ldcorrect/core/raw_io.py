from __future__ import annotations

from pathlib import Path

import numpy as np

from ldcorrect.core.yuv import Frame
from ldcorrect.errors import InvalidGeometryError


def read_raw_yuv(path: str | Path, frame: Frame) -> np.ndarray:
    """Read a headerless YUV frame; the file must hold exactly `frame.buffer_size` bytes."""
    p = Path(path)
    data = p.read_bytes()
    if len(data) != frame.buffer_size:
        raise InvalidGeometryError(
            f"{p}: wrong size of yuv image: {len(data)} bytes, expected {frame.buffer_size} bytes"
        )
    return np.frombuffer(data, dtype=np.uint8).copy()


def save_raw_yuv(path: str | Path, buffer: np.ndarray | bytes) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(buffer, np.ndarray):
        buffer = np.ascontiguousarray(buffer, dtype=np.uint8).tobytes()
    p.write_bytes(bytes(buffer))
    return p
