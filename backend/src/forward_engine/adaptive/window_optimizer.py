import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from src.forward_engine.models.trade_models import Trade, PortfolioStats
from src.forward_engine.models.walkforward_models import (
    WalkForwardConfig,
    WalkForwardPeriod,
    WalkForwardWindow,
    TARGET_FIELDS,
)
from src.forward_engine.adaptive.cancellation import CancellationToken
from src.forward_engine.adaptive.risk_constraints import RiskConstraints
from src.forward_engine.adaptive.window_splitter import WindowSplitter
from src.forward_engine.metrics.scenario import PerformanceEvaluator

logger = logging.getLogger(__name__)

@dataclass
class WindowOutcome:
    """
    Result of one window. period is None when the window was skipped for insufficient trades.
    """
    window: WalkForwardWindow
    period: Optional[WalkForwardPeriod]
    parameter_tests: int = 0
    in_sample_trades: List[Trade] = field(default_factory=list)
    out_of_sample_trades: List[Trade] = field(default_factory=list)

    @property
    def skipped(self) -> bool:
        return self.period is None

@dataclass
class _Candidate:
    params: Dict[str, float]
    stats: PortfolioStats
    score: Optional[float]

def target_value(stats: PortfolioStats, target: str) -> Optional[float]:
    """
    Scalar metric named by an optimization target; None when the metric is undefined.
    """
    value = getattr(stats, TARGET_FIELDS[target])
    if value is None or math.isnan(value):
        return None
    return float(value)

class WindowOptimizer:
    """
    Grid-searches the candidate parameter sets on a window's in-sample trades and
    validates the winner on the out-of-sample trades.
    """

    def __init__(self, evaluator: PerformanceEvaluator, optimization_target: str):
        self.evaluator = evaluator
        self.target = optimization_target

    def optimize(
        self,
        window: WalkForwardWindow,
        trades: List[Trade],
        candidates: List[Dict[str, float]],
        config: WalkForwardConfig,
        token: Optional[CancellationToken] = None
    ) -> WindowOutcome:
        in_sample, out_of_sample = WindowSplitter.partition(trades, window)

        if len(in_sample) < config.min_in_sample_trades or len(out_of_sample) < config.min_out_of_sample_trades:
            logger.debug(
                "Skipping window %s: %d in-sample / %d out-of-sample trades",
                window.in_sample_start.date(), len(in_sample), len(out_of_sample)
            )
            return WindowOutcome(window=window, period=None)

        # Evaluators that size positions pin their baseline to the in-sample trades
        bind = getattr(self.evaluator, "for_window", None)
        evaluator = bind(in_sample) if bind is not None else self.evaluator

        best_feasible: Optional[_Candidate] = None
        best_any: Optional[_Candidate] = None
        tested = 0

        for params in candidates:
            if token is not None:
                token.raise_if_cancelled()

            stats = evaluator(in_sample, params)
            tested += 1
            candidate = _Candidate(params=dict(params), stats=stats, score=target_value(stats, self.target))

            # Strict comparison keeps the earliest candidate on ties
            if best_any is None or self._rank(candidate) > self._rank(best_any):
                best_any = candidate
            if not RiskConstraints.is_acceptable(params, stats):
                continue
            if best_feasible is None or self._rank(candidate) > self._rank(best_feasible):
                best_feasible = candidate

        used_fallback = best_feasible is None
        best = best_any if used_fallback else best_feasible
        if used_fallback:
            logger.warning(
                "All %d candidates violate risk limits in window %s; using unconstrained best %s",
                tested, window.in_sample_start.date(), best.params
            )

        if token is not None:
            token.raise_if_cancelled()
        oos_stats = evaluator(out_of_sample, best.params)

        period = WalkForwardPeriod(
            **window.model_dump(),
            optimal_parameters=best.params,
            in_sample_metrics=best.stats,
            out_of_sample_metrics=oos_stats,
            target_metric_in_sample=best.score,
            target_metric_out_of_sample=target_value(oos_stats, self.target),
            parameter_tests=tested,
            used_fallback=used_fallback
        )

        return WindowOutcome(
            window=window,
            period=period,
            parameter_tests=tested,
            in_sample_trades=in_sample,
            out_of_sample_trades=out_of_sample
        )

    @staticmethod
    def _rank(candidate: _Candidate) -> float:
        return candidate.score if candidate.score is not None else -math.inf
