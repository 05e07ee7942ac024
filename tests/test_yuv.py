from __future__ import annotations

import numpy as np
import pytest

from ldcorrect.core.yuv import Frame, YuvPlanes, YuvVariant, combine_planes, parse_variant, split_planes
from ldcorrect.errors import InvalidGeometryError, NullInputError, UnsupportedVariantError


@pytest.mark.parametrize(
    "tag,expected",
    [
        (1, YuvVariant.NV12),
        (2, YuvVariant.UYVY),
        ("nv12", YuvVariant.NV12),
        ("YUV422I_UYVY", YuvVariant.UYVY),
        ("2", YuvVariant.UYVY),
        (YuvVariant.NV12, YuvVariant.NV12),
    ],
)
def test_parse_variant(tag, expected):
    assert parse_variant(tag) is expected


@pytest.mark.parametrize("tag", [0, 3, "i420", "", None, True])
def test_parse_variant_rejects_unknown(tag):
    with pytest.raises(UnsupportedVariantError):
        parse_variant(tag)


def test_frame_sizes():
    nv12 = Frame(width=6, height=4, variant=1)
    assert nv12.chroma_shape == (2, 3)
    assert nv12.buffer_size == 6 * 4 * 3 // 2
    uyvy = Frame(width=6, height=4, variant="uyvy")
    assert uyvy.chroma_shape == (4, 3)
    assert uyvy.buffer_size == 6 * 4 * 2


@pytest.mark.parametrize("w,h", [(0, 4), (4, 0), (-2, 2)])
def test_frame_rejects_non_positive_dimensions(w, h):
    with pytest.raises(InvalidGeometryError):
        Frame(width=w, height=h, variant=1)


def test_uyvy_needs_even_width():
    with pytest.raises(InvalidGeometryError):
        Frame(width=5, height=2, variant=2)


def test_split_nv12_layout():
    frame = Frame(width=4, height=2, variant=1)
    buf = np.arange(frame.buffer_size, dtype=np.uint8)
    planes = split_planes(buf, frame)
    assert planes.y.tolist() == [[0, 1, 2, 3], [4, 5, 6, 7]]
    assert planes.u.tolist() == [[8, 10]]
    assert planes.v.tolist() == [[9, 11]]


def test_split_uyvy_layout():
    frame = Frame(width=4, height=1, variant=2)
    buf = bytes([10, 1, 20, 2, 11, 3, 21, 4])
    planes = split_planes(buf, frame)
    assert planes.y.tolist() == [[1, 2, 3, 4]]
    assert planes.u.tolist() == [[10, 11]]
    assert planes.v.tolist() == [[20, 21]]


@pytest.mark.parametrize(
    "w,h,variant",
    [(4, 4, 1), (6, 2, 1), (5, 3, 1), (8, 6, 2), (2, 3, 2)],
)
def test_split_combine_roundtrip(w, h, variant):
    frame = Frame(width=w, height=h, variant=variant)
    rng = np.random.default_rng(w * 100 + h)
    buf = rng.integers(0, 256, size=frame.buffer_size, dtype=np.uint8)
    out = combine_planes(split_planes(buf, frame), frame)
    assert out.dtype == np.uint8
    assert out.tobytes() == buf.tobytes()


def test_wrong_buffer_size_is_rejected():
    frame = Frame(width=4, height=4, variant=1)
    with pytest.raises(InvalidGeometryError):
        split_planes(bytes(frame.buffer_size - 1), frame)


def test_missing_buffer_or_plane():
    frame = Frame(width=4, height=4, variant=1)
    with pytest.raises(NullInputError):
        split_planes(None, frame)  # type: ignore[arg-type]
    planes = YuvPlanes.blank(frame)
    with pytest.raises(NullInputError):
        combine_planes(YuvPlanes(y=planes.y, u=None, v=planes.v), frame)  # type: ignore[arg-type]


def test_split_planes_do_not_alias_input():
    frame = Frame(width=4, height=2, variant=1)
    buf = np.zeros(frame.buffer_size, dtype=np.uint8)
    planes = split_planes(buf, frame)
    planes.y[0, 0] = 99
    assert buf[0] == 0
