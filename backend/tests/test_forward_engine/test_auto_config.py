import pytest

from src.forward_engine.adaptive.auto_config import (
    DEFAULT_WALK_FORWARD_CONFIG,
    WALK_FORWARD_PRESETS,
    apply_preset,
    calculate_auto_config,
    calculate_trade_frequency,
)
from src.forward_engine.adaptive.errors import WalkForwardValidationError
from src.forward_engine.adaptive.parameter_grid import ParameterGrid


def test_trade_frequency(make_trades):
    frequency = calculate_trade_frequency(make_trades([10] * 31, "2024-01-01", 1))

    assert frequency.total_trades == 31
    assert frequency.trading_days == 30
    assert frequency.avg_days_between_trades == pytest.approx(1.0)
    assert frequency.trades_per_month == pytest.approx(31.0)


def test_trade_frequency_needs_two_trades(make_trades):
    assert calculate_trade_frequency([]) is None
    assert calculate_trade_frequency(make_trades([10])) is None


def test_auto_config_for_daily_trading(make_trades):
    config = calculate_auto_config(calculate_trade_frequency(make_trades([10] * 31, "2024-01-01", 1)))

    assert (config.in_sample_days, config.out_of_sample_days, config.step_size_days) == (14, 7, 7)
    assert (config.min_in_sample_trades, config.min_out_of_sample_trades) == (15, 5)
    assert config.parameter_ranges == DEFAULT_WALK_FORWARD_CONFIG.parameter_ranges


def test_auto_config_shrinks_windows_for_sparse_logs(make_trades):
    frequency = calculate_trade_frequency(make_trades([10] * 10, "2024-01-01", 10))

    config = calculate_auto_config(frequency)

    assert frequency.trading_days == 90
    assert (config.in_sample_days, config.out_of_sample_days, config.step_size_days) == (40, 12, 30)
    assert (config.min_in_sample_trades, config.min_out_of_sample_trades) == (4, 1)


def test_apply_preset_overlays_ranges():
    config = apply_preset(DEFAULT_WALK_FORWARD_CONFIG, "conservative")

    assert (config.in_sample_days, config.out_of_sample_days, config.step_size_days) == (30, 10, 10)
    assert config.parameter_ranges["kellyMultiplier"] == (0.25, 1, 0.25)
    # Ranges the preset leaves out are kept
    assert config.parameter_ranges["fixedFractionPct"] == (2, 8, 1)
    assert DEFAULT_WALK_FORWARD_CONFIG.in_sample_days == 45


def test_apply_unknown_preset():
    with pytest.raises(WalkForwardValidationError):
        apply_preset(DEFAULT_WALK_FORWARD_CONFIG, "reckless")


def test_defaults_and_presets_are_valid_grids():
    ParameterGrid.validate(DEFAULT_WALK_FORWARD_CONFIG.parameter_ranges)
    for key in WALK_FORWARD_PRESETS:
        ParameterGrid.validate(apply_preset(DEFAULT_WALK_FORWARD_CONFIG, key).parameter_ranges)
