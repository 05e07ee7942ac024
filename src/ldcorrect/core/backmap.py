from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import numpy as np

from ldcorrect.calibration import LensCalibrationTable
from ldcorrect.core.interp import RadialInterpolator
from ldcorrect.core.polar import incidence_angle, to_cartesian, to_polar
from ldcorrect.core.yuv import Frame, YuvPlanes
from ldcorrect.errors import InvalidGeometryError

log = logging.getLogger(__name__)

# Maps one row of incidence angles to distorted radii.
RowInterpolator = Callable[[np.ndarray], np.ndarray]


@dataclass(frozen=True)
class DisplacementField:
    """
    Source coordinates in the distorted frame for every output pixel.

    h_d[row, col], v_d[row, col]: horizontal/vertical source position of output pixel (col, row).
    """

    h_d: np.ndarray
    v_d: np.ndarray
    center: tuple[float, float]

    def __post_init__(self) -> None:
        h_d = np.array(self.h_d, dtype=np.float64)
        v_d = np.array(self.v_d, dtype=np.float64)
        if h_d.ndim != 2 or h_d.shape != v_d.shape:
            raise InvalidGeometryError(f"h_d/v_d must be equal (H,W) arrays, got {h_d.shape} and {v_d.shape}")
        h_d.setflags(write=False)
        v_d.setflags(write=False)
        object.__setattr__(self, "h_d", h_d)
        object.__setattr__(self, "v_d", v_d)
        object.__setattr__(self, "center", (float(self.center[0]), float(self.center[1])))

    @property
    def width(self) -> int:
        return int(self.h_d.shape[1])

    @property
    def height(self) -> int:
        return int(self.h_d.shape[0])

    def to_text(self, which: str = "h") -> str:
        """Matrix dump for offline comparison: one row per line, each value as '%f '."""
        if which not in ("h", "v"):
            raise ValueError("which must be h|v")
        m = self.h_d if which == "h" else self.v_d
        return "".join("".join(f"{val:f} " for val in row) + "\n" for row in m)

    def save_text(self, path_h: str | Path, path_v: str | Path) -> None:
        Path(path_h).write_text(self.to_text("h"), encoding="utf-8")
        Path(path_v).write_text(self.to_text("v"), encoding="utf-8")


def pixel_mesh(width: int, height: int) -> tuple[np.ndarray, np.ndarray]:
    """(h_p, v_p) grids shaped (H,W) with h_p[row, col] = col and v_p[row, col] = row."""
    h_p, v_p = np.meshgrid(np.arange(width, dtype=np.float64), np.arange(height, dtype=np.float64))
    return h_p, v_p


def optical_center(width: int, height: int) -> tuple[float, float]:
    # Integer halving, as the reference mapping computes it from unsigned sizes.
    return float((int(width) - 1) // 2), float((int(height) - 1) // 2)


def build_displacement_field(
    width: int,
    height: int,
    calibration: LensCalibrationTable,
    *,
    center: tuple[float, float] | None = None,
    interpolator: RowInterpolator | None = None,
) -> DisplacementField:
    width = int(width)
    height = int(height)
    if width <= 0 or height <= 0:
        raise InvalidGeometryError(f"frame dimensions must be > 0, got {width}x{height}")
    if center is None:
        center = optical_center(width, height)
    if interpolator is None:
        interpolator = RadialInterpolator.from_calibration(calibration)
    hc, vc = float(center[0]), float(center[1])

    h_p, v_p = pixel_mesh(width, height)
    radius, azimuth = to_polar(h_p - hc, v_p - vc)
    theta = incidence_angle(radius, calibration.z_offset)

    r_d = np.empty_like(theta)
    for row in range(height):
        r_d[row] = interpolator(theta[row])

    with np.errstate(over="ignore", invalid="ignore"):
        h_d, v_d = to_cartesian(r_d, azimuth)
        h_d = h_d + hc
        v_d = v_d + vc

    log.debug("displacement field %dx%d built, center=(%g, %g), z_offset=%g", width, height, hc, vc, calibration.z_offset)
    return DisplacementField(h_d=h_d, v_d=v_d, center=(hc, vc))


def _source_indices(field: DisplacementField) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    Output (x, y) and rounded source (sx, sy) for every pixel whose source lies in the frame.

    Pixels are listed column by column (x outer, y inner).
    """
    w, h = field.width, field.height
    xs = np.repeat(np.arange(w, dtype=np.intp), h)
    ys = np.tile(np.arange(h, dtype=np.intp), w)

    # Round half up by truncation toward zero: (int)(value + 0.5).
    with np.errstate(over="ignore", invalid="ignore"):
        src_x = np.trunc(field.h_d.ravel(order="F") + 0.5)
        src_y = np.trunc(field.v_d.ravel(order="F") + 0.5)
        inside = (src_x >= 0) & (src_y >= 0) & (src_x < w) & (src_y < h)

    return xs[inside], ys[inside], src_x[inside].astype(np.intp), src_y[inside].astype(np.intp)


def _last_write_wins(dst: np.ndarray, src: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    # Keep only the final occurrence of each destination index.
    if dst.size == 0:
        return dst, src
    _, first_in_rev = np.unique(dst[::-1], return_index=True)
    last = dst.size - 1 - first_in_rev
    return dst[last], src[last]


def resample_planes(
    planes: YuvPlanes,
    frame: Frame,
    field: DisplacementField,
    out: YuvPlanes | None = None,
) -> YuvPlanes:
    """
    Copy source samples into `out` following `field`.

    Output pixels whose rounded source position falls outside the frame are
    not written, so they keep whatever `out` held (zeros when `out` is None).
    """
    planes.check(frame)
    if (field.height, field.width) != frame.luma_shape:
        raise InvalidGeometryError(f"field is {field.width}x{field.height}, frame is {frame.width}x{frame.height}")
    if out is None:
        out = YuvPlanes.blank(frame)
    else:
        out.check(frame)

    xs, ys, sx, sy = _source_indices(field)
    out.y[ys, xs] = planes.y[sy, sx]

    rows, cols = frame.chroma_shape
    size = rows * cols
    if size == 0:
        return out

    factor = int(frame.variant)
    dst = (factor * ys // 2) * cols + xs // 2
    src = (factor * sy // 2) * cols + sx // 2
    keep = (dst < size) & (src < size)
    dst, src = _last_write_wins(dst[keep], src[keep])

    dst_r, dst_c = np.divmod(dst, cols)
    src_r, src_c = np.divmod(src, cols)
    out.u[dst_r, dst_c] = planes.u[src_r, src_c]
    out.v[dst_r, dst_c] = planes.v[src_r, src_c]
    return out


def correct_planes(
    planes: YuvPlanes,
    frame: Frame,
    calibration: LensCalibrationTable,
    *,
    out: YuvPlanes | None = None,
    center: tuple[float, float] | None = None,
    interpolator: RowInterpolator | None = None,
) -> YuvPlanes:
    """Back-map all three planes of `frame` through the lens model."""
    planes.check(frame)
    if out is not None:
        out.check(frame)
    field = build_displacement_field(
        frame.width, frame.height, calibration, center=center, interpolator=interpolator
    )
    return resample_planes(planes, frame, field, out=out)
