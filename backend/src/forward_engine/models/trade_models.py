from pydantic import BaseModel
from typing import Optional
from datetime import datetime

class Trade(BaseModel):
    """
    A single closed (or still open) options trade from a block's trade log.
    Read-only input to the walk-forward engine.
    """
    date_opened: datetime
    time_opened: str = ""
    date_closed: Optional[datetime] = None
    time_closed: Optional[str] = None
    pl: float
    num_contracts: float = 1.0
    funds_at_close: float
    margin_req: float = 0.0
    strategy: str = "Unknown"
    opening_commissions_fees: float = 0.0
    closing_commissions_fees: float = 0.0

class PortfolioStats(BaseModel):
    """
    Portfolio metrics for a set of trades.
    Drawdown and loss percentages are expressed in percent (5.0 == 5%), win_rate as a 0-1 decimal.
    """
    total_trades: int
    total_pl: float
    winning_trades: int
    losing_trades: int
    break_even_trades: int
    win_rate: float
    avg_win: float
    avg_loss: float
    max_win: float
    max_loss: float
    sharpe_ratio: Optional[float] = None
    sortino_ratio: Optional[float] = None
    calmar_ratio: Optional[float] = None
    cagr: Optional[float] = None
    kelly_percentage: Optional[float] = None
    max_drawdown: float
    avg_daily_pl: float
    total_commissions: float
    net_pl: float
    profit_factor: Optional[float]  # None when there are wins but no losses
    initial_capital: float
    max_win_streak: int = 0
    max_loss_streak: int = 0
    current_streak: int = 0
    time_in_drawdown: Optional[float] = None
    monthly_win_rate: float = 0.0
    weekly_win_rate: float = 0.0
    max_daily_loss_pct: float = 0.0
