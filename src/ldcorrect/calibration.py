from __future__ import annotations

import hashlib
import json
import logging
import math
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

import numpy as np

from ldcorrect.errors import CalibrationError

log = logging.getLogger(__name__)

# One sample per degree of a 180 degree field of view.
MAX_CALIBRATION_SAMPLES = 180

LENS_SCHEMA_VERSION = "ldcorrect.lens.v0"

_SEPARATOR = re.compile(r"[,\s]+")


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise CalibrationError(msg)


def _readonly(values: Iterable[float]) -> np.ndarray:
    arr = np.array(values, dtype=np.float64).reshape(-1)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True)
class LensCalibrationTable:
    """
    Radial lens model as an ordered (incidence angle, image height) table.

    angles_rad: field angle of each sample, non-decreasing.
    heights_px: image height of each sample, in sensor pixels.
    """

    angles_rad: np.ndarray
    heights_px: np.ndarray
    focal_length_mm: float
    pixel_pitch_mm: float
    scaling_factor: float

    def __post_init__(self) -> None:
        angles = _readonly(self.angles_rad)
        heights = _readonly(self.heights_px)
        object.__setattr__(self, "angles_rad", angles)
        object.__setattr__(self, "heights_px", heights)

        _require(angles.shape == heights.shape, "angles and heights must have the same length")
        _require(angles.size >= 2, f"calibration needs at least 2 samples, got {angles.size}")
        _require(bool(np.all(np.isfinite(angles)) and np.all(np.isfinite(heights))), "calibration samples must be finite")
        _require(bool(np.all(np.diff(angles) >= 0.0)), "calibration angles must be non-decreasing")
        for name in ("focal_length_mm", "pixel_pitch_mm", "scaling_factor"):
            _require(math.isfinite(float(getattr(self, name))), f"{name} must be finite")
        _require(float(self.pixel_pitch_mm) > 0.0, "pixel_pitch_mm must be > 0")
        _require(float(self.scaling_factor) != 0.0, "scaling_factor must be non-zero")

    @property
    def num_samples(self) -> int:
        return int(self.angles_rad.size)

    @property
    def focal_length_px(self) -> float:
        return float(self.focal_length_mm) / float(self.pixel_pitch_mm)

    @property
    def z_offset(self) -> float:
        """Distance of the virtual image plane from the projection centre, in pixels."""
        return self.focal_length_px / float(self.scaling_factor)

    @classmethod
    def from_degrees_mm(
        cls,
        samples: Iterable[tuple[float, float]],
        *,
        focal_length_mm: float,
        pixel_pitch_mm: float,
        scaling_factor: float,
        max_samples: int = MAX_CALIBRATION_SAMPLES,
    ) -> "LensCalibrationTable":
        _require(float(pixel_pitch_mm) > 0.0, "pixel_pitch_mm must be > 0")
        pairs = [(float(a), float(h)) for a, h in samples]
        if len(pairs) > max_samples:
            log.warning("calibration has %d samples, keeping the first %d", len(pairs), max_samples)
            pairs = pairs[:max_samples]
        return cls(
            angles_rad=[a / 180.0 * math.pi for a, _ in pairs],
            heights_px=[h / float(pixel_pitch_mm) for _, h in pairs],
            focal_length_mm=float(focal_length_mm),
            pixel_pitch_mm=float(pixel_pitch_mm),
            scaling_factor=float(scaling_factor),
        )

    def fingerprint(self) -> str:
        h = hashlib.sha256()
        h.update(np.ascontiguousarray(self.angles_rad).tobytes())
        h.update(np.ascontiguousarray(self.heights_px).tobytes())
        h.update(np.array([self.focal_length_mm, self.pixel_pitch_mm, self.scaling_factor], dtype=np.float64).tobytes())
        return h.hexdigest()


def _parse_float(token: str, what: str, lineno: int) -> float:
    try:
        return float(token)
    except ValueError as e:
        raise CalibrationError(f"line {lineno}: {what} is not a number: {token!r}") from e


def parse_calibration_text(text: str, *, max_samples: int = MAX_CALIBRATION_SAMPLES) -> LensCalibrationTable:
    """
    Parse the lens parameter file format:

        focal_length_mm
        pixel_pitch_mm
        scaling_factor
        angle_deg, height_mm
        ...

    A trailing comma after the leading scalars is accepted.
    """
    lines: list[tuple[int, str]] = []
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.split("#", 1)[0].strip()
        if line:
            lines.append((lineno, line))

    header_names = ("focal length", "pixel pitch", "scaling factor")
    if len(lines) < 3:
        raise CalibrationError(f"missing {header_names[len(lines)]} in lens parameters")
    header: list[float] = []
    for (lineno, line), name in zip(lines[:3], header_names):
        tokens = [t for t in _SEPARATOR.split(line) if t]
        _require(bool(tokens), f"line {lineno}: missing {name}")
        _require(len(tokens) == 1, f"line {lineno}: expected a single {name}, got {line!r}")
        header.append(_parse_float(tokens[0], name, lineno))

    samples: list[tuple[float, float]] = []
    for lineno, line in lines[3:]:
        tokens = [t for t in _SEPARATOR.split(line) if t]
        _require(len(tokens) == 2, f"line {lineno}: expected 'angle, height', got {line!r}")
        samples.append((_parse_float(tokens[0], "angle", lineno), _parse_float(tokens[1], "height", lineno)))

    return LensCalibrationTable.from_degrees_mm(
        samples,
        focal_length_mm=header[0],
        pixel_pitch_mm=header[1],
        scaling_factor=header[2],
        max_samples=max_samples,
    )


def parse_calibration_json(data: dict[str, Any], *, max_samples: int = MAX_CALIBRATION_SAMPLES) -> LensCalibrationTable:
    _require(isinstance(data, dict), "lens JSON must be an object")
    _require(data.get("schema_version") == LENS_SCHEMA_VERSION, f"schema_version must be {LENS_SCHEMA_VERSION}")

    for k in ("focal_length_mm", "pixel_pitch_mm", "scaling_factor"):
        _require(data.get(k) is not None, f"{k} is required")

    samples = data.get("samples")
    _require(isinstance(samples, list), "samples must be a list of [angle_deg, height_mm]")
    pairs: list[tuple[float, float]] = []
    for i, s in enumerate(samples):
        _require(isinstance(s, (list, tuple)) and len(s) == 2, f"samples[{i}] must be [angle_deg, height_mm]")
        try:
            pairs.append((float(s[0]), float(s[1])))
        except (TypeError, ValueError) as e:
            raise CalibrationError(f"samples[{i}] is not numeric") from e

    try:
        focal = float(data["focal_length_mm"])
        pitch = float(data["pixel_pitch_mm"])
        scaling = float(data["scaling_factor"])
    except (TypeError, ValueError) as e:
        raise CalibrationError(f"lens scalars must be numeric: {e}") from e

    return LensCalibrationTable.from_degrees_mm(
        pairs,
        focal_length_mm=focal,
        pixel_pitch_mm=pitch,
        scaling_factor=scaling,
        max_samples=max_samples,
    )


def calibration_to_json(table: LensCalibrationTable) -> dict[str, Any]:
    pitch = float(table.pixel_pitch_mm)
    return {
        "schema_version": LENS_SCHEMA_VERSION,
        "focal_length_mm": float(table.focal_length_mm),
        "pixel_pitch_mm": pitch,
        "scaling_factor": float(table.scaling_factor),
        "samples": [
            [math.degrees(float(a)), float(h) * pitch] for a, h in zip(table.angles_rad, table.heights_px)
        ],
    }


def load_calibration(path: str | Path, *, max_samples: int = MAX_CALIBRATION_SAMPLES) -> LensCalibrationTable:
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise CalibrationError(f"cannot read lens parameters {p}: {e}") from e

    if p.suffix.lower() == ".json":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise CalibrationError(f"{p} is not valid JSON: {e}") from e
        return parse_calibration_json(data, max_samples=max_samples)
    return parse_calibration_text(text, max_samples=max_samples)
