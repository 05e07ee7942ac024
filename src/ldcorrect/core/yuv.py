from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

import numpy as np

from ldcorrect.errors import InvalidGeometryError, NullInputError, UnsupportedVariantError


class YuvVariant(IntEnum):
    """
    Supported raw layouts. The value is the vertical chroma factor:
    a chroma plane has `value * height // 2` rows of `width // 2` samples.
    """

    NV12 = 1  # 4:2:0 semi-planar, Y plane then interleaved U,V pairs
    UYVY = 2  # 4:2:2 packed, U Y0 V Y1 per luma pair


_VARIANT_NAMES = {
    "nv12": YuvVariant.NV12,
    "yuv420_nv12": YuvVariant.NV12,
    "uyvy": YuvVariant.UYVY,
    "yuv422i_uyvy": YuvVariant.UYVY,
}


def parse_variant(tag: YuvVariant | int | str) -> YuvVariant:
    if isinstance(tag, YuvVariant):
        return tag
    if isinstance(tag, str):
        key = tag.strip().lower()
        if key in _VARIANT_NAMES:
            return _VARIANT_NAMES[key]
        if key.isdigit():
            tag = int(key)
    if isinstance(tag, int) and not isinstance(tag, bool):
        try:
            return YuvVariant(tag)
        except ValueError:
            pass
    raise UnsupportedVariantError(f"unsupported YUV variant: {tag!r} (expected 1/nv12 or 2/uyvy)")


@dataclass(frozen=True)
class Frame:
    width: int
    height: int
    variant: YuvVariant

    def __post_init__(self) -> None:
        object.__setattr__(self, "variant", parse_variant(self.variant))
        if int(self.width) <= 0 or int(self.height) <= 0:
            raise InvalidGeometryError(f"frame dimensions must be > 0, got {self.width}x{self.height}")
        if self.variant is YuvVariant.UYVY and int(self.width) % 2:
            raise InvalidGeometryError(f"UYVY frames need an even width, got {self.width}")
        object.__setattr__(self, "width", int(self.width))
        object.__setattr__(self, "height", int(self.height))

    @property
    def luma_shape(self) -> tuple[int, int]:
        return (self.height, self.width)

    @property
    def chroma_shape(self) -> tuple[int, int]:
        return (int(self.variant) * self.height // 2, self.width // 2)

    @property
    def chroma_size(self) -> int:
        rows, cols = self.chroma_shape
        return rows * cols

    @property
    def buffer_size(self) -> int:
        return self.width * self.height + 2 * self.chroma_size


@dataclass(frozen=True)
class YuvPlanes:
    y: np.ndarray  # (H, W) uint8
    u: np.ndarray  # chroma_shape uint8
    v: np.ndarray  # chroma_shape uint8

    @classmethod
    def blank(cls, frame: Frame, fill: int = 0) -> "YuvPlanes":
        return cls(
            y=np.full(frame.luma_shape, fill, dtype=np.uint8),
            u=np.full(frame.chroma_shape, fill, dtype=np.uint8),
            v=np.full(frame.chroma_shape, fill, dtype=np.uint8),
        )

    def check(self, frame: Frame) -> None:
        """Raise if a plane is missing or does not match `frame`."""
        for name, shape in (("y", frame.luma_shape), ("u", frame.chroma_shape), ("v", frame.chroma_shape)):
            plane = getattr(self, name)
            if plane is None:
                raise NullInputError(f"{name} plane is missing")
            if tuple(np.shape(plane)) != shape:
                raise InvalidGeometryError(f"{name} plane shape {np.shape(plane)} != expected {shape}")


def _as_buffer(buffer: bytes | bytearray | memoryview | np.ndarray | None, frame: Frame) -> np.ndarray:
    if buffer is None:
        raise NullInputError("frame buffer is missing")
    if isinstance(buffer, np.ndarray):
        buf = np.ascontiguousarray(buffer, dtype=np.uint8).reshape(-1)
    else:
        buf = np.frombuffer(bytes(buffer), dtype=np.uint8)
    if buf.size != frame.buffer_size:
        raise InvalidGeometryError(
            f"wrong size of yuv frame: {buf.size} bytes, expected {frame.buffer_size} bytes "
            f"for {frame.width}x{frame.height} {frame.variant.name}"
        )
    return buf


def split_planes(buffer: bytes | bytearray | memoryview | np.ndarray, frame: Frame) -> YuvPlanes:
    buf = _as_buffer(buffer, frame)
    n_luma = frame.width * frame.height

    if frame.variant is YuvVariant.NV12:
        y = buf[:n_luma].reshape(frame.luma_shape)
        chroma = buf[n_luma:]
        u = chroma[0::2].reshape(frame.chroma_shape)
        v = chroma[1::2].reshape(frame.chroma_shape)
    elif frame.variant is YuvVariant.UYVY:
        quads = buf.reshape(-1, 4)
        y = quads[:, 1::2].reshape(frame.luma_shape)
        u = quads[:, 0].reshape(frame.chroma_shape)
        v = quads[:, 2].reshape(frame.chroma_shape)
    else:
        raise UnsupportedVariantError(f"unsupported YUV variant: {frame.variant!r}")

    return YuvPlanes(y=y.copy(), u=u.copy(), v=v.copy())


def combine_planes(planes: YuvPlanes, frame: Frame) -> np.ndarray:
    planes.check(frame)
    out = np.empty(frame.buffer_size, dtype=np.uint8)
    n_luma = frame.width * frame.height

    if frame.variant is YuvVariant.NV12:
        out[:n_luma] = np.asarray(planes.y, dtype=np.uint8).reshape(-1)
        out[n_luma::2] = np.asarray(planes.u, dtype=np.uint8).reshape(-1)
        out[n_luma + 1 :: 2] = np.asarray(planes.v, dtype=np.uint8).reshape(-1)
    elif frame.variant is YuvVariant.UYVY:
        quads = out.reshape(-1, 4)
        quads[:, 0] = np.asarray(planes.u, dtype=np.uint8).reshape(-1)
        quads[:, 1::2] = np.asarray(planes.y, dtype=np.uint8).reshape(-1, 2)
        quads[:, 2] = np.asarray(planes.v, dtype=np.uint8).reshape(-1)
    else:
        raise UnsupportedVariantError(f"unsupported YUV variant: {frame.variant!r}")

    return out
