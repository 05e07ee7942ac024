from ldcorrect.api.correction import LensCorrector, correct_frame
from ldcorrect.api.field_io import load_displacement_field, save_displacement_field

__all__ = [
    "LensCorrector",
    "correct_frame",
    "load_displacement_field",
    "save_displacement_field",
]
