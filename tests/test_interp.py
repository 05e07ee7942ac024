import math

import numpy as np
import pytest

from ldcorrect.calibration import LensCalibrationTable
from ldcorrect.core.interp import NO_MATCH, RadialInterpolator
from ldcorrect.errors import CalibrationError


def test_segment_lines_and_last_point_reuse():
    interp = RadialInterpolator.from_points([0.0, 1.0, 3.0], [0.0, 2.0, 3.0])
    assert np.allclose(interp.slope, [2.0, 0.5, 0.5])
    assert np.allclose(interp.intercept, [0.0, 1.5, 1.5])


def test_query_uses_line_of_nearest_point():
    interp = RadialInterpolator.from_points([0.0, 1.0, 3.0], [0.0, 2.0, 3.0])
    # 0.6 is nearest to x=1, so the (1,2)-(3,3) line is extended backwards.
    out = interp(np.array([0.6, 0.4, 2.5, 10.0]))
    assert out[0] == pytest.approx(0.5 * 0.6 + 1.5)
    assert out[1] == pytest.approx(2.0 * 0.4)
    assert out[2] == pytest.approx(0.5 * 2.5 + 1.5)
    assert out[3] == pytest.approx(0.5 * 10.0 + 1.5)


def test_query_at_control_point_uses_its_own_line():
    interp = RadialInterpolator.from_points([0.0, 1.0, 2.0], [0.0, 10.0, 11.0])
    assert interp.nearest_index(np.array([1.0]))[0] == 1
    assert interp(np.array([1.0]))[0] == interp.slope[1] * 1.0 + interp.intercept[1]


def test_distance_tie_goes_to_later_point():
    interp = RadialInterpolator.from_points([0.0, 1.0, 2.0], [0.0, 1.0, 5.0])
    assert interp.nearest_index(np.array([0.5, 1.5])).tolist() == [1, 2]
    out = interp(np.array([0.5]))
    assert out[0] == interp.slope[1] * 0.5 + interp.intercept[1]


def test_equal_angles_later_sample_wins():
    interp = RadialInterpolator.from_points([0.0, 1.0, 1.0, 2.0], [0.0, 1.0, 2.0, 3.0])
    assert interp.nearest_index(np.array([1.0]))[0] == 2


def test_non_finite_query_and_empty_table_give_sentinel():
    interp = RadialInterpolator.from_points([0.0, 1.0], [0.0, 1.0])
    out = interp(np.array([np.nan, np.inf, 0.5]))
    assert out[0] == NO_MATCH
    assert out[1] == NO_MATCH
    assert out[2] == pytest.approx(0.5)

    empty = RadialInterpolator.from_points([], [])
    assert np.all(empty(np.array([0.1, 0.2])) == NO_MATCH)


def test_single_point_is_rejected():
    with pytest.raises(CalibrationError):
        RadialInterpolator.from_points([0.1], [1.0])


def test_repeated_calls_are_bit_identical():
    table = LensCalibrationTable.from_degrees_mm(
        [(float(d), 0.003 * d + 1e-5 * d * d) for d in range(0, 91, 5)],
        focal_length_mm=1.2,
        pixel_pitch_mm=0.003,
        scaling_factor=1.0,
    )
    interp = RadialInterpolator.from_calibration(table)
    q = np.linspace(0.0, math.pi / 2, 997)
    a = interp(q)
    b = interp(q)
    c = RadialInterpolator.from_calibration(table)(q)
    assert a.tobytes() == b.tobytes() == c.tobytes()
