import math
from typing import List, Tuple
import numpy as np
from src.forward_engine.models.walkforward_models import WalkForwardPeriod, WalkForwardSummary

class PerformanceTracker:
    """
    Analyzes the outputs of walk-forward validation to assess robustness.
    Tracks parameter drift and in-sample vs out-of-sample consistency across periods.
    """

    @staticmethod
    def aggregate(periods: List[WalkForwardPeriod]) -> Tuple[WalkForwardSummary, float, float]:
        """
        Returns (summary, consistency_score, average_performance_delta).
        """
        if not periods:
            return WalkForwardSummary(
                avg_in_sample_performance=0.0,
                avg_out_of_sample_performance=0.0,
                degradation_factor=0.0,
                parameter_stability=0.0,
                robustness_score=0.0
            ), 0.0, 0.0

        is_values = [p.target_metric_in_sample for p in periods if _finite(p.target_metric_in_sample)]
        oos_values = [p.target_metric_out_of_sample for p in periods if _finite(p.target_metric_out_of_sample)]

        avg_is = sum(is_values) / len(is_values) if is_values else 0.0
        avg_oos = sum(oos_values) / len(oos_values) if oos_values else 0.0

        degradation = avg_oos / avg_is if avg_is != 0 else 0.0
        stability = PerformanceTracker.parameter_stability(periods)
        robustness = _clamp(0.5 * _clamp(degradation, 0.0, 1.0) + 0.5 * stability, 0.0, 1.0)

        summary = WalkForwardSummary(
            avg_in_sample_performance=avg_is,
            avg_out_of_sample_performance=avg_oos,
            degradation_factor=degradation,
            parameter_stability=stability,
            robustness_score=robustness
        )
        return summary, PerformanceTracker.consistency(periods), PerformanceTracker.performance_delta(periods)

    @staticmethod
    def parameter_stability(periods: List[WalkForwardPeriod]) -> float:
        if not periods:
            return 0.0
        if len(periods) < 2:
            return 1.0

        names = []
        for p in periods:
            for name in p.optimal_parameters:
                if name not in names:
                    names.append(name)
        if not names:
            return 1.0

        scores = []
        for name in names:
            vals = np.array([p.optimal_parameters[name] for p in periods if name in p.optimal_parameters])
            if len(vals) < 2:
                scores.append(1.0)
                continue
            mean = float(np.mean(vals))
            std = float(np.std(vals))
            cv = std / abs(mean) if mean != 0 else std
            scores.append(1.0 / (1.0 + cv))

        return sum(scores) / len(scores)

    @staticmethod
    def consistency(periods: List[WalkForwardPeriod]) -> float:
        if not periods:
            return 0.0
        consistent = 0
        for p in periods:
            is_val = p.target_metric_in_sample if _finite(p.target_metric_in_sample) else 0.0
            oos_val = p.target_metric_out_of_sample if _finite(p.target_metric_out_of_sample) else 0.0
            if (is_val > 0) == (oos_val > 0):
                consistent += 1
        return consistent / len(periods)

    @staticmethod
    def performance_delta(periods: List[WalkForwardPeriod]) -> float:
        deltas = [
            p.target_metric_out_of_sample - p.target_metric_in_sample
            for p in periods
            if _finite(p.target_metric_in_sample) and _finite(p.target_metric_out_of_sample)
        ]
        return sum(deltas) / len(deltas) if deltas else 0.0

def _finite(value) -> bool:
    return value is not None and math.isfinite(value)

def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))
