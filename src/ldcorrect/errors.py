from __future__ import annotations


class LensCorrectionError(Exception):
    """Base class for failures that abort a correction call."""


class CalibrationError(LensCorrectionError, ValueError):
    pass


class UnsupportedVariantError(LensCorrectionError, ValueError):
    pass


class InvalidGeometryError(LensCorrectionError, ValueError):
    pass


class NullInputError(LensCorrectionError, ValueError):
    pass
