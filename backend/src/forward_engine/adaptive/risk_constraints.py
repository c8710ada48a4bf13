from typing import Dict, List
from src.forward_engine.models.trade_models import PortfolioStats

class RiskConstraints:
    """
    Hard risk ceilings carried by a candidate parameter set.
    A candidate is infeasible when its own in-sample stats break a ceiling it sets.
    """

    @staticmethod
    def violations(params: Dict[str, float], stats: PortfolioStats) -> List[str]:
        out = []

        max_dd = params.get("maxDrawdownPct")
        if max_dd is not None and stats.max_drawdown > max_dd:
            out.append(f"max drawdown {stats.max_drawdown:.2f}% > {max_dd}%")

        max_daily = params.get("maxDailyLossPct")
        if max_daily is not None and stats.max_daily_loss_pct > max_daily:
            out.append(f"max daily loss {stats.max_daily_loss_pct:.2f}% > {max_daily}%")

        loss_limit = params.get("consecutiveLossLimit")
        if loss_limit is not None and stats.max_loss_streak > loss_limit:
            out.append(f"loss streak {stats.max_loss_streak} > {loss_limit}")

        return out

    @staticmethod
    def is_acceptable(params: Dict[str, float], stats: PortfolioStats) -> bool:
        return not RiskConstraints.violations(params, stats)
