import math
from typing import Dict, List, Optional, Tuple
from pydantic import BaseModel, Field
from src.forward_engine.models.trade_models import Trade
from src.forward_engine.models.walkforward_models import WalkForwardConfig, OptimizationTarget
from src.forward_engine.adaptive.errors import WalkForwardValidationError

DEFAULT_PARAMETER_RANGES: Dict[str, Tuple[float, float, float]] = {
    "kellyMultiplier": (0.5, 1.5, 0.25),
    "fixedFractionPct": (2, 8, 1),
    "maxDrawdownPct": (5, 20, 5),
    "maxDailyLossPct": (2, 8, 2),
    "consecutiveLossLimit": (2, 6, 1),
}

DEFAULT_WALK_FORWARD_CONFIG = WalkForwardConfig(
    in_sample_days=45,
    out_of_sample_days=15,
    step_size_days=15,
    optimization_target=OptimizationTarget.NET_PL.value,
    parameter_ranges=DEFAULT_PARAMETER_RANGES,
    min_in_sample_trades=15,
    min_out_of_sample_trades=5
)

class WalkForwardPreset(BaseModel):
    label: str
    description: str
    in_sample_days: int
    out_of_sample_days: int
    step_size_days: int
    parameter_ranges: Dict[str, Tuple[float, float, float]] = Field(default_factory=dict)

WALK_FORWARD_PRESETS: Dict[str, WalkForwardPreset] = {
    "conservative": WalkForwardPreset(
        label="Conservative",
        description="Lower leverage, tighter risk controls",
        in_sample_days=30,
        out_of_sample_days=10,
        step_size_days=10,
        parameter_ranges={
            "kellyMultiplier": (0.25, 1, 0.25),
            "maxDrawdownPct": (5, 15, 5),
            "maxDailyLossPct": (2, 6, 2),
            "consecutiveLossLimit": (2, 4, 1),
        }
    ),
    "moderate": WalkForwardPreset(
        label="Moderate",
        description="Balanced trade-off between return and robustness",
        in_sample_days=45,
        out_of_sample_days=15,
        step_size_days=15,
        parameter_ranges={
            "kellyMultiplier": (0.5, 1.5, 0.25),
            "fixedFractionPct": (2, 8, 1),
            "maxDrawdownPct": (5, 20, 5),
        }
    ),
    "aggressive": WalkForwardPreset(
        label="Aggressive",
        description="Broader leverage sweep with wider risk tolerances",
        in_sample_days=60,
        out_of_sample_days=20,
        step_size_days=20,
        parameter_ranges={
            "kellyMultiplier": (0.75, 2, 0.25),
            "fixedFractionPct": (4, 12, 2),
            "maxDrawdownPct": (10, 30, 5),
            "maxDailyLossPct": (4, 12, 2),
        }
    ),
}

# Trades the windows should roughly capture
TARGET_IN_SAMPLE_TRADES = 10
TARGET_OUT_OF_SAMPLE_TRADES = 3

class TradeFrequency(BaseModel):
    total_trades: int
    trading_days: int
    avg_days_between_trades: float
    trades_per_month: float

def calculate_trade_frequency(trades: List[Trade]) -> Optional[TradeFrequency]:
    """
    Trade cadence of a log. None for fewer than two trades.
    """
    if not trades or len(trades) < 2:
        return None

    opened = sorted(t.date_opened for t in trades)
    span_days = (opened[-1] - opened[0]).total_seconds() / 86400
    trading_days = max(1, math.ceil(span_days))

    return TradeFrequency(
        total_trades=len(trades),
        trading_days=trading_days,
        avg_days_between_trades=trading_days / (len(trades) - 1),
        trades_per_month=len(trades) / trading_days * 30
    )

def calculate_auto_config(
    frequency: TradeFrequency,
    base: Optional[WalkForwardConfig] = None
) -> WalkForwardConfig:
    """
    Sizes the windows so that each captures enough trades, bounded to 14-180 in-sample days and
    7-60 out-of-sample days, and relaxes the trade floors for sparse logs.
    """
    base = base or DEFAULT_WALK_FORWARD_CONFIG

    in_sample_days = math.ceil(frequency.avg_days_between_trades * TARGET_IN_SAMPLE_TRADES)
    out_of_sample_days = math.ceil(frequency.avg_days_between_trades * TARGET_OUT_OF_SAMPLE_TRADES)
    in_sample_days = max(14, min(180, in_sample_days))
    out_of_sample_days = max(7, min(60, out_of_sample_days))
    step_size_days = out_of_sample_days

    # Shrink long windows when the log cannot hold at least three of them
    max_windows = math.floor((frequency.trading_days - in_sample_days) / step_size_days)
    if max_windows < 3 and frequency.trading_days > 60:
        scale = frequency.trading_days / (in_sample_days + out_of_sample_days + 3 * step_size_days)
        if scale < 1:
            in_sample_days = max(14, math.floor(in_sample_days * scale))
            out_of_sample_days = max(7, math.floor(out_of_sample_days * scale))

    if frequency.trades_per_month >= 20:
        min_is, min_oos = 15, 5
    elif frequency.trades_per_month >= 8:
        min_is, min_oos = 10, 3
    elif frequency.trades_per_month >= 4:
        min_is, min_oos = 6, 2
    else:
        min_is, min_oos = 4, 1

    return base.model_copy(update={
        "in_sample_days": in_sample_days,
        "out_of_sample_days": out_of_sample_days,
        "step_size_days": step_size_days,
        "min_in_sample_trades": min_is,
        "min_out_of_sample_trades": min_oos,
    })

def apply_preset(config: WalkForwardConfig, key: str) -> WalkForwardConfig:
    """
    Overlays a preset's window sizes and ranges on config; ranges the preset omits are kept.
    """
    preset = WALK_FORWARD_PRESETS.get(key)
    if preset is None:
        raise WalkForwardValidationError(f"Unknown preset '{key}'")

    ranges = dict(config.parameter_ranges)
    ranges.update(preset.parameter_ranges)
    return config.model_copy(update={
        "in_sample_days": preset.in_sample_days,
        "out_of_sample_days": preset.out_of_sample_days,
        "step_size_days": preset.step_size_days,
        "parameter_ranges": ranges,
    })
