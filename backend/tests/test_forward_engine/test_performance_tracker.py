from datetime import datetime, timedelta

import pytest

from src.forward_engine.adaptive.performance_tracker import PerformanceTracker
from src.forward_engine.metrics.portfolio_stats import PortfolioStatsCalculator
from src.forward_engine.models.walkforward_models import WalkForwardPeriod


def _period(i, target_is, target_oos, params=None):
    start = datetime(2024, 1, 1) + timedelta(days=10 * i)
    stats = PortfolioStatsCalculator.empty_stats()
    return WalkForwardPeriod(
        in_sample_start=start,
        in_sample_end=start + timedelta(days=20),
        out_of_sample_start=start + timedelta(days=20),
        out_of_sample_end=start + timedelta(days=30),
        optimal_parameters=params if params is not None else {"kellyMultiplier": 1.0},
        in_sample_metrics=stats,
        out_of_sample_metrics=stats,
        target_metric_in_sample=target_is,
        target_metric_out_of_sample=target_oos,
    )


def test_degradation_and_robustness():
    periods = [_period(0, 100.0, 50.0), _period(1, 200.0, 100.0)]

    summary, consistency, delta = PerformanceTracker.aggregate(periods)

    assert summary.avg_in_sample_performance == pytest.approx(150.0)
    assert summary.avg_out_of_sample_performance == pytest.approx(75.0)
    assert summary.degradation_factor == pytest.approx(0.5)
    assert summary.parameter_stability == pytest.approx(1.0)
    assert summary.robustness_score == pytest.approx(0.75)
    assert consistency == pytest.approx(1.0)
    assert delta == pytest.approx(-75.0)


def test_zero_in_sample_average_gives_zero_degradation():
    summary, _, _ = PerformanceTracker.aggregate([_period(0, 50.0, 10.0), _period(1, -50.0, 20.0)])
    assert summary.degradation_factor == 0.0


def test_degradation_is_clamped_inside_robustness():
    summary, _, _ = PerformanceTracker.aggregate([_period(0, 10.0, 40.0)])

    assert summary.degradation_factor == pytest.approx(4.0)
    assert summary.robustness_score == pytest.approx(1.0)


def test_parameter_stability_uses_coefficient_of_variation():
    periods = [
        _period(0, 1.0, 1.0, {"kellyMultiplier": 1.0, "maxDrawdownPct": 10.0}),
        _period(1, 1.0, 1.0, {"kellyMultiplier": 3.0, "maxDrawdownPct": 10.0}),
    ]
    # kelly: mean 2, std 1 -> 1 / 1.5; drawdown: constant -> 1
    assert PerformanceTracker.parameter_stability(periods) == pytest.approx((1 / 1.5 + 1.0) / 2)


def test_parameter_stability_without_tunables_or_periods():
    assert PerformanceTracker.parameter_stability([_period(0, 1.0, 1.0, {}), _period(1, 1.0, 1.0, {})]) == 1.0
    assert PerformanceTracker.parameter_stability([_period(0, 1.0, 1.0)]) == 1.0
    assert PerformanceTracker.parameter_stability([]) == 0.0


def test_consistency_counts_matching_signs():
    periods = [
        _period(0, 100.0, 20.0),
        _period(1, 100.0, -20.0),
        _period(2, -10.0, -5.0),
        _period(3, 0.0, 0.0),
    ]
    assert PerformanceTracker.consistency(periods) == pytest.approx(0.75)


def test_undefined_targets_are_left_out_of_averages():
    summary, _, delta = PerformanceTracker.aggregate([_period(0, None, 30.0), _period(1, 60.0, None)])

    assert summary.avg_in_sample_performance == pytest.approx(60.0)
    assert summary.avg_out_of_sample_performance == pytest.approx(30.0)
    assert delta == 0.0


def test_empty_input_yields_zeros():
    summary, consistency, delta = PerformanceTracker.aggregate([])

    assert summary.robustness_score == 0.0
    assert summary.parameter_stability == 0.0
    assert consistency == 0.0
    assert delta == 0.0
