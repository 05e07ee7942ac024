from __future__ import annotations

from pathlib import Path

import numpy as np
from PIL import Image

from ldcorrect.core.yuv import Frame, YuvPlanes, YuvVariant


def load_gray_u8(path: str | Path) -> np.ndarray:
    """Load an image as an (H,W) uint8 grayscale array."""
    with Image.open(Path(path)) as im:
        im = im.convert("L")
        arr = np.asarray(im, dtype=np.uint8)
    return arr


def save_luma_png(path: str | Path, y: np.ndarray) -> Path:
    """
    Write a luma plane as an 8-bit grayscale PNG.

    Only the Y plane is exported; chroma is not converted to RGB.
    """
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(np.ascontiguousarray(y, dtype=np.uint8)).save(p)
    return p


def planes_from_gray(gray: np.ndarray, variant: YuvVariant | int | str) -> tuple[Frame, YuvPlanes]:
    """Wrap a grayscale image as a frame with neutral (128) chroma."""
    gray = np.asarray(gray, dtype=np.uint8)
    if gray.ndim != 2:
        raise ValueError(f"expected a (H,W) grayscale image, got shape {gray.shape}")
    frame = Frame(width=gray.shape[1], height=gray.shape[0], variant=variant)
    planes = YuvPlanes.blank(frame, fill=128)
    planes.y[...] = gray
    return frame, planes
