from pydantic import BaseModel
from typing import Optional

class KellyMetrics(BaseModel):
    """
    Kelly Criterion inputs and result for a trade set.
    fraction is the raw Kelly fraction (0.25 == bet 25%), percent is fraction * 100.
    """
    fraction: float
    percent: float
    win_rate: float
    payoff_ratio: float
    avg_win: float
    avg_loss: float
    has_valid_kelly: bool
    avg_win_pct: Optional[float] = None
    avg_loss_pct: Optional[float] = None
    normalized_kelly_pct: Optional[float] = None
