import itertools
import math
from typing import Dict, List, Mapping, Tuple
from src.forward_engine.adaptive.errors import WalkForwardValidationError

ParameterRange = Tuple[float, float, float]

KNOWN_TUNABLES = (
    "kellyMultiplier",
    "fixedFractionPct",
    "fixedContracts",
    "maxDrawdownPct",
    "maxDailyLossPct",
    "consecutiveLossLimit",
)
STRATEGY_WEIGHT_PREFIX = "strategy:"
DEFAULT_MAX_COMBINATIONS = 20000

# Absorbs float error in (max - min) / step, e.g. (0.3 - 0.1) / 0.1
_STEP_TOLERANCE = 1e-9

class ParameterGrid:
    """
    Enumerates candidate parameter sets as the Cartesian product of inclusive
    (min, max, step) ranges. The first configured tunable varies slowest.
    """

    @staticmethod
    def validate(ranges: Mapping[str, ParameterRange], max_combinations: int = DEFAULT_MAX_COMBINATIONS):
        for name, bounds in ranges.items():
            if name not in KNOWN_TUNABLES and not (
                name.startswith(STRATEGY_WEIGHT_PREFIX) and len(name) > len(STRATEGY_WEIGHT_PREFIX)
            ):
                raise WalkForwardValidationError(f"Unknown parameter '{name}'")

            lo, hi, step = bounds
            if not all(math.isfinite(v) for v in (lo, hi, step)):
                raise WalkForwardValidationError(f"Invalid range for '{name}': bounds must be finite")
            if step <= 0:
                raise WalkForwardValidationError(
                    f"Invalid parameter step size ({step}) for '{name}'. Step must be positive."
                )
            if lo > hi:
                raise WalkForwardValidationError(
                    f"Invalid parameter range for '{name}': max ({hi}) must be >= min ({lo})."
                )
            # Denormal steps or extreme bounds overflow the step count
            if not math.isfinite((hi - lo) / step):
                raise WalkForwardValidationError(
                    f"Invalid parameter step size ({step}) for '{name}'. Too many steps."
                )

        total = ParameterGrid.count(ranges)
        if total > max_combinations:
            raise WalkForwardValidationError(
                f"Walk-forward parameter grid too large ({total:,} combinations). "
                f"Reduce ranges or increase step sizes."
            )

    @staticmethod
    def steps(lo: float, hi: float, step: float) -> int:
        return math.floor((hi - lo) / step + _STEP_TOLERANCE) + 1

    @staticmethod
    def values(lo: float, hi: float, step: float) -> List[float]:
        return [round(lo + i * step, 6) for i in range(ParameterGrid.steps(lo, hi, step))]

    @staticmethod
    def count(ranges: Mapping[str, ParameterRange]) -> int:
        return math.prod(ParameterGrid.steps(*bounds) for bounds in ranges.values())

    @staticmethod
    def candidates(ranges: Mapping[str, ParameterRange]) -> List[Dict[str, float]]:
        if not ranges:
            return [{}]

        names = list(ranges.keys())
        axes = [ParameterGrid.values(*ranges[name]) for name in names]
        return [dict(zip(names, combo)) for combo in itertools.product(*axes)]
