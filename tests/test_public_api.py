from __future__ import annotations


def test_public_api_exports() -> None:
    import ldcorrect as lc

    assert hasattr(lc, "correct_frame")
    assert hasattr(lc, "LensCorrector")
    assert hasattr(lc, "LensCalibrationTable")
    assert hasattr(lc, "load_calibration")
    assert hasattr(lc, "save_displacement_field")
    assert hasattr(lc, "load_displacement_field")
    assert issubclass(lc.CalibrationError, lc.LensCorrectionError)
    assert issubclass(lc.NullInputError, ValueError)
