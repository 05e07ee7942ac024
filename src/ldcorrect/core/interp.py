from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from ldcorrect.calibration import LensCalibrationTable
from ldcorrect.errors import CalibrationError

# Returned for queries that have no nearest control point (empty table, NaN/inf query).
NO_MATCH = float(np.finfo(np.float64).max)


@dataclass(frozen=True)
class RadialInterpolator:
    """
    Piecewise-linear lookup of image height from incidence angle.

    Each control point i carries the line through points i and i+1; the last
    point reuses its predecessor's line. A query is evaluated on the line of
    its nearest control point, which means values close to a sample can be
    extrapolated from the neighbouring segment. This reproduces the reference
    mapping exactly and is not a bounded interval interpolation.
    """

    x: np.ndarray
    y: np.ndarray
    slope: np.ndarray
    intercept: np.ndarray

    @classmethod
    def from_points(cls, x: np.ndarray, y: np.ndarray) -> "RadialInterpolator":
        x = np.array(x, dtype=np.float64).reshape(-1)
        y = np.array(y, dtype=np.float64).reshape(-1)
        if x.shape != y.shape:
            raise ValueError("x and y must have the same length")
        if x.size == 1:
            raise CalibrationError("a single control point does not define a line")

        slope = np.empty_like(x)
        intercept = np.empty_like(x)
        if x.size:
            # Equal angles give inf/nan slopes, as a plain division would.
            with np.errstate(divide="ignore", invalid="ignore"):
                slope[:-1] = (y[1:] - y[:-1]) / (x[1:] - x[:-1])
                intercept[:-1] = y[:-1] - x[:-1] * slope[:-1]
            slope[-1] = slope[-2]
            intercept[-1] = intercept[-2]

        for arr in (x, y, slope, intercept):
            arr.setflags(write=False)
        return cls(x=x, y=y, slope=slope, intercept=intercept)

    @classmethod
    def from_calibration(cls, table: LensCalibrationTable) -> "RadialInterpolator":
        return cls.from_points(table.angles_rad, table.heights_px)

    def nearest_index(self, xq: np.ndarray) -> np.ndarray:
        """
        Index of the nearest control point per query, -1 when there is none.

        Distance ties resolve to the higher index.
        """
        xq = np.asarray(xq, dtype=np.float64)
        flat = xq.reshape(-1)
        n = self.x.size
        if n == 0:
            return np.full(xq.shape, -1, dtype=np.intp)

        dist = np.abs(flat[:, None] - self.x[None, :])
        dist = np.where(np.isfinite(dist), dist, np.inf)
        idx = (n - 1) - np.argmin(dist[:, ::-1], axis=1)
        matched = np.isfinite(dist).any(axis=1)
        idx = np.where(matched, idx, -1).astype(np.intp)
        return idx.reshape(xq.shape)

    def __call__(self, xq: np.ndarray) -> np.ndarray:
        xq = np.asarray(xq, dtype=np.float64)
        idx = self.nearest_index(xq)
        out = np.full(xq.shape, NO_MATCH, dtype=np.float64)
        hit = idx >= 0
        if np.any(hit):
            k = idx[hit]
            with np.errstate(invalid="ignore", over="ignore"):
                out[hit] = self.slope[k] * xq[hit] + self.intercept[k]
        return out
