import math

import pytest

from src.forward_engine.adaptive.errors import WalkForwardValidationError
from src.forward_engine.adaptive.parameter_grid import ParameterGrid


def test_values_are_inclusive():
    assert ParameterGrid.values(0.5, 1.5, 0.25) == [0.5, 0.75, 1.0, 1.25, 1.5]
    assert ParameterGrid.values(5, 5, 1) == [5]


def test_values_absorb_float_error():
    assert ParameterGrid.values(0.1, 0.3, 0.1) == [0.1, 0.2, 0.3]


def test_values_stop_below_max_when_step_overshoots():
    assert ParameterGrid.values(10, 25, 10) == [10, 20]


def test_candidates_cartesian_product_in_insertion_order():
    ranges = {"kellyMultiplier": (0.5, 1.0, 0.5), "maxDrawdownPct": (10, 30, 10)}

    candidates = ParameterGrid.candidates(ranges)

    assert len(candidates) == ParameterGrid.count(ranges) == 6
    assert candidates[0] == {"kellyMultiplier": 0.5, "maxDrawdownPct": 10}
    assert candidates[1] == {"kellyMultiplier": 0.5, "maxDrawdownPct": 20}
    assert candidates[-1] == {"kellyMultiplier": 1.0, "maxDrawdownPct": 30}
    assert len({tuple(c.items()) for c in candidates}) == 6


def test_empty_ranges_yield_single_empty_candidate():
    assert ParameterGrid.candidates({}) == [{}]
    assert ParameterGrid.count({}) == 1


@pytest.mark.parametrize("ranges", [
    {"kellyMultiplier": (0.5, 1.5, 0)},
    {"kellyMultiplier": (0.5, 1.5, -0.25)},
    {"kellyMultiplier": (2.0, 1.0, 0.5)},
    {"kellyMultiplier": (0.5, math.inf, 0.5)},
    {"kellyMultiplier": (0.0, 1.0, 5e-324)},
    {"maxDrawdownPct": (-1e308, 1e308, 1.0)},
    {"leverage": (1, 2, 1)},
    {"strategy:": (0, 1, 1)},
])
def test_validate_rejects_malformed_ranges(ranges):
    with pytest.raises(WalkForwardValidationError):
        ParameterGrid.validate(ranges)


def test_validate_accepts_strategy_weights():
    ParameterGrid.validate({"strategy:Iron Condor": (0, 1, 0.5), "consecutiveLossLimit": (2, 6, 1)})


def test_validate_rejects_oversized_grid():
    ranges = {"kellyMultiplier": (0.01, 1.0, 0.01), "fixedFractionPct": (0.1, 10, 0.1)}

    with pytest.raises(WalkForwardValidationError, match="too large"):
        ParameterGrid.validate(ranges, max_combinations=5000)
    ParameterGrid.validate(ranges, max_combinations=10000)
