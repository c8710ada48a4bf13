from typing import Callable, Dict, List, Optional
from src.forward_engine.models.trade_models import Trade, PortfolioStats
from src.forward_engine.metrics.portfolio_stats import PortfolioStatsCalculator

# (trades, parameter set) -> stats. Any callable with this shape can drive the optimizer.
PerformanceEvaluator = Callable[[List[Trade], Dict[str, float]], PortfolioStats]

DEFAULT_FIXED_FRACTION_PCT = 2.0
STRATEGY_PREFIX = "strategy:"

class ScenarioEvaluator:
    """
    Default performance evaluator.
    Re-sizes every trade according to a parameter set, rebuilds the equity curve from the
    subset's starting capital and computes portfolio stats on the result.

    avg_contracts is the position size fixedContracts is measured against. Left unset, it is
    taken from whichever trades are evaluated; for_window pins it to a window's in-sample trades
    so the out-of-sample run trades the size that was optimized.
    """

    def __init__(self, calculator: Optional[PortfolioStatsCalculator] = None, avg_contracts: Optional[float] = None):
        self.calculator = calculator or PortfolioStatsCalculator()
        self.avg_contracts = avg_contracts

    def __call__(self, trades: List[Trade], params: Dict[str, float]) -> PortfolioStats:
        return self.calculator.calculate(self.apply_scenario(trades, params, self.avg_contracts))

    def for_window(self, in_sample: List[Trade]) -> "ScenarioEvaluator":
        return ScenarioEvaluator(self.calculator, avg_contracts=ScenarioEvaluator.average_contracts(in_sample))

    @staticmethod
    def average_contracts(trades: List[Trade]) -> float:
        if not trades:
            return 1.0
        return sum(abs(t.num_contracts) for t in trades) / len(trades)

    @staticmethod
    def position_multiplier(params: Dict[str, float], avg_contracts: float = 1.0) -> float:
        multiplier = 1.0

        kelly = params.get("kellyMultiplier")
        if kelly is not None and kelly > 0:
            multiplier *= kelly

        fixed_fraction = params.get("fixedFractionPct")
        if fixed_fraction is not None and fixed_fraction > 0:
            multiplier *= fixed_fraction / DEFAULT_FIXED_FRACTION_PCT

        fixed_contracts = params.get("fixedContracts")
        if fixed_contracts is not None and fixed_contracts > 0:
            multiplier *= fixed_contracts / (avg_contracts if avg_contracts > 0 else 1.0)

        return max(multiplier, 0.0)

    @staticmethod
    def strategy_weights(params: Dict[str, float]) -> Dict[str, float]:
        return {
            key[len(STRATEGY_PREFIX):].lower(): max(0.0, value)
            for key, value in params.items()
            if key.startswith(STRATEGY_PREFIX)
        }

    @staticmethod
    def apply_scenario(
        trades: List[Trade],
        params: Dict[str, float],
        avg_contracts: Optional[float] = None
    ) -> List[Trade]:
        """
        Returns scaled copies of trades (input order preserved); funds_at_close becomes the
        running equity of the scaled series.
        """
        if not trades:
            return []

        if avg_contracts is None:
            avg_contracts = ScenarioEvaluator.average_contracts(trades)
        multiplier = ScenarioEvaluator.position_multiplier(params, avg_contracts)
        weights = ScenarioEvaluator.strategy_weights(params)

        equity = PortfolioStatsCalculator.calculate_initial_capital(trades)
        scaled = []
        for t in trades:
            scale = multiplier * weights.get((t.strategy or "Unknown").lower(), 1.0)
            pl = t.pl * scale
            equity += pl
            scaled.append(t.model_copy(update={
                "pl": pl,
                "funds_at_close": equity,
                "opening_commissions_fees": t.opening_commissions_fees * abs(scale),
                "closing_commissions_fees": t.closing_commissions_fees * abs(scale),
            }))
        return scaled
