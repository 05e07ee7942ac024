from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np

from ldcorrect.api.field_io import field_matches, load_displacement_field, save_displacement_field
from ldcorrect.calibration import LensCalibrationTable, load_calibration
from ldcorrect.core.backmap import DisplacementField, build_displacement_field, resample_planes
from ldcorrect.core.yuv import Frame, YuvVariant, combine_planes, split_planes

log = logging.getLogger(__name__)


def _as_table(calibration: LensCalibrationTable | str | Path) -> LensCalibrationTable:
    if isinstance(calibration, LensCalibrationTable):
        return calibration
    return load_calibration(calibration)


@dataclass
class LensCorrector:
    """
    Corrects frames for one lens, reusing the displacement field across frames
    of the same resolution.

    field_cache_dir: optional directory where the field is persisted and
    looked up (keyed by resolution and lens fingerprint).
    """

    calibration: LensCalibrationTable
    field_cache_dir: Path | None = None
    _fields: dict[tuple[int, int], DisplacementField] = field(default_factory=dict, init=False, repr=False)

    @classmethod
    def from_file(cls, path: str | Path, *, field_cache_dir: Path | None = None) -> "LensCorrector":
        return cls(calibration=load_calibration(path), field_cache_dir=field_cache_dir)

    def field_for(self, width: int, height: int) -> DisplacementField:
        key = (int(width), int(height))
        cached = self._fields.get(key)
        if cached is not None:
            return cached

        cache_dir = Path(self.field_cache_dir) if self.field_cache_dir is not None else None
        if cache_dir is not None and field_matches(cache_dir, width=key[0], height=key[1], calibration=self.calibration):
            log.debug("loading displacement field from %s", cache_dir)
            fld = load_displacement_field(cache_dir)
        else:
            fld = build_displacement_field(key[0], key[1], self.calibration)
            if cache_dir is not None:
                save_displacement_field(cache_dir, fld, calibration=self.calibration)
                log.debug("saved displacement field to %s", cache_dir)

        self._fields[key] = fld
        return fld

    def correct(self, buffer: bytes | np.ndarray, frame: Frame) -> np.ndarray:
        planes = split_planes(buffer, frame)
        fld = self.field_for(frame.width, frame.height)
        out = resample_planes(planes, frame, fld)
        return combine_planes(out, frame)


def correct_frame(
    buffer: bytes | np.ndarray,
    width: int,
    height: int,
    variant: YuvVariant | int | str,
    calibration: LensCalibrationTable | str | Path,
) -> np.ndarray:
    """
    Undistort one raw YUV frame.

    Returns a new uint8 buffer of the same size. Output pixels whose source
    falls outside the input frame are zero.
    """
    frame = Frame(width=width, height=height, variant=variant)
    table = _as_table(calibration)
    return LensCorrector(calibration=table).correct(buffer, frame)
