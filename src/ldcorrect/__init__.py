from ldcorrect import calibration
from ldcorrect.api import LensCorrector, correct_frame, load_displacement_field, save_displacement_field
from ldcorrect.calibration import LensCalibrationTable, load_calibration
from ldcorrect.errors import (
    CalibrationError,
    InvalidGeometryError,
    LensCorrectionError,
    NullInputError,
    UnsupportedVariantError,
)

__all__ = [
    "calibration",
    "LensCalibrationTable",
    "load_calibration",
    "LensCorrector",
    "correct_frame",
    "load_displacement_field",
    "save_displacement_field",
    "LensCorrectionError",
    "CalibrationError",
    "UnsupportedVariantError",
    "InvalidGeometryError",
    "NullInputError",
]
