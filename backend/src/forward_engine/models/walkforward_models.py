from enum import Enum
from pydantic import BaseModel, Field
from typing import List, Dict, Optional, Tuple, Literal
from datetime import datetime
from src.forward_engine.models.trade_models import PortfolioStats

class OptimizationTarget(str, Enum):
    NET_PL = "netPl"
    PROFIT_FACTOR = "profitFactor"
    SHARPE_RATIO = "sharpeRatio"
    SORTINO_RATIO = "sortinoRatio"
    CALMAR_RATIO = "calmarRatio"
    CAGR = "cagr"
    AVG_DAILY_PL = "avgDailyPl"
    WIN_RATE = "winRate"

# Target name -> PortfolioStats attribute
TARGET_FIELDS: Dict[str, str] = {
    OptimizationTarget.NET_PL.value: "net_pl",
    OptimizationTarget.PROFIT_FACTOR.value: "profit_factor",
    OptimizationTarget.SHARPE_RATIO.value: "sharpe_ratio",
    OptimizationTarget.SORTINO_RATIO.value: "sortino_ratio",
    OptimizationTarget.CALMAR_RATIO.value: "calmar_ratio",
    OptimizationTarget.CAGR.value: "cagr",
    OptimizationTarget.AVG_DAILY_PL.value: "avg_daily_pl",
    OptimizationTarget.WIN_RATE.value: "win_rate",
}

class WalkForwardConfig(BaseModel):
    """
    Run configuration for a walk-forward analysis.
    parameter_ranges maps a tunable name to a (min, max, step) triple; order is generation order.
    """
    in_sample_days: int
    out_of_sample_days: int
    step_size_days: int
    optimization_target: str = OptimizationTarget.NET_PL.value
    parameter_ranges: Dict[str, Tuple[float, float, float]] = Field(default_factory=dict)
    min_in_sample_trades: int = 10
    min_out_of_sample_trades: int = 3

class WalkForwardWindow(BaseModel):
    """
    A single in-sample / out-of-sample window. Ranges are half-open: [start, end).
    """
    in_sample_start: datetime
    in_sample_end: datetime
    out_of_sample_start: datetime
    out_of_sample_end: datetime

class WalkForwardPeriod(WalkForwardWindow):
    """
    Result of optimizing one window and validating the winner out-of-sample.
    """
    optimal_parameters: Dict[str, float]
    in_sample_metrics: PortfolioStats
    out_of_sample_metrics: PortfolioStats
    target_metric_in_sample: Optional[float] = None
    target_metric_out_of_sample: Optional[float] = None
    parameter_tests: int = 0
    used_fallback: bool = False

class WalkForwardSummary(BaseModel):
    avg_in_sample_performance: float
    avg_out_of_sample_performance: float
    degradation_factor: float
    parameter_stability: float
    robustness_score: float

class WalkForwardRunStats(BaseModel):
    total_periods: int
    evaluated_periods: int
    skipped_periods: int
    total_parameter_tests: int
    analyzed_trades: int
    duration_ms: int
    consistency_score: float
    average_performance_delta: float

class WalkForwardResults(BaseModel):
    periods: List[WalkForwardPeriod]
    summary: WalkForwardSummary
    stats: WalkForwardRunStats

class WalkForwardComputation(BaseModel):
    """
    Output of a single runner invocation, before it is attached to a block.
    """
    config: WalkForwardConfig
    results: WalkForwardResults
    started_at: datetime
    completed_at: datetime

class WalkForwardAnalysis(BaseModel):
    """
    Persisted walk-forward analysis for a block (trade log).
    """
    id: str
    block_id: str
    config: WalkForwardConfig
    results: WalkForwardResults
    created_at: datetime
    updated_at: Optional[datetime] = None
    notes: Optional[str] = None

class WalkForwardProgressEvent(BaseModel):
    phase: Literal["segmenting", "optimizing", "evaluating", "completed"]
    percent: float
    message: str
    current_period: int
    total_periods: int
    tested_combinations: Optional[int] = None
    total_combinations: Optional[int] = None
    window: Optional[WalkForwardWindow] = None
