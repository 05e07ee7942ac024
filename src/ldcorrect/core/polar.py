from __future__ import annotations

import numpy as np


def to_polar(x: np.ndarray, y: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """
    Cartesian -> polar, elementwise over equal-shaped arrays.

    Returns (radius, azimuth) with azimuth = atan2(y, x) in (-pi, pi].
    The zero vector maps to (0, 0).
    """
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    radius = np.sqrt(x * x + y * y)
    azimuth = np.arctan2(y, x)
    return radius, azimuth


def to_cartesian(radius: np.ndarray, azimuth: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Inverse of `to_polar`."""
    radius = np.asarray(radius, dtype=np.float64)
    azimuth = np.asarray(azimuth, dtype=np.float64)
    return radius * np.cos(azimuth), radius * np.sin(azimuth)


def incidence_angle(radius: np.ndarray, z_offset: float) -> np.ndarray:
    # Angle between the optical axis and the ray through a pixel at `radius` from the centre.
    radius = np.asarray(radius, dtype=np.float64)
    return np.arctan2(radius, np.full_like(radius, float(z_offset)))
