import asyncio
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Callable, List, Optional
from src.forward_engine.models.trade_models import Trade
from src.forward_engine.models.walkforward_models import (
    WalkForwardComputation,
    WalkForwardConfig,
    WalkForwardProgressEvent,
    WalkForwardResults,
    WalkForwardRunStats,
    WalkForwardWindow,
    TARGET_FIELDS,
)
from src.forward_engine.adaptive.cancellation import CancellationToken
from src.forward_engine.adaptive.errors import WalkForwardAbortedError, WalkForwardValidationError
from src.forward_engine.adaptive.parameter_grid import ParameterGrid, DEFAULT_MAX_COMBINATIONS
from src.forward_engine.adaptive.performance_tracker import PerformanceTracker
from src.forward_engine.adaptive.window_optimizer import WindowOptimizer, WindowOutcome
from src.forward_engine.adaptive.window_splitter import WindowSplitter
from src.forward_engine.metrics.scenario import PerformanceEvaluator, ScenarioEvaluator

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4

ProgressCallback = Callable[[WalkForwardProgressEvent], None]

# Percent bands: segmentation, per-window optimization, aggregation
_SEGMENTED_PCT = 5.0
_WINDOWS_DONE_PCT = 95.0

class WalkForwardRunner:
    """
    Executes the complete walk-forward validation process.
    Optimizes on in-sample windows and validates on the following out-of-sample window to
    prevent overfitting. Windows are independent and run on a bounded thread pool.
    """

    @staticmethod
    def validate(config: WalkForwardConfig, max_combinations: int = DEFAULT_MAX_COMBINATIONS):
        if config.in_sample_days <= 0 or config.out_of_sample_days <= 0 or config.step_size_days <= 0:
            raise WalkForwardValidationError("Window lengths and step size must be positive day counts")
        if config.min_in_sample_trades < 0 or config.min_out_of_sample_trades < 0:
            raise WalkForwardValidationError("Minimum trade counts cannot be negative")
        if config.optimization_target not in TARGET_FIELDS:
            raise WalkForwardValidationError(f"Unknown optimization target '{config.optimization_target}'")
        ParameterGrid.validate(config.parameter_ranges, max_combinations)

    @staticmethod
    async def run(
        trades: List[Trade],
        config: WalkForwardConfig,
        token: Optional[CancellationToken] = None,
        on_progress: Optional[ProgressCallback] = None,
        evaluator: Optional[PerformanceEvaluator] = None,
        max_workers: Optional[int] = None,
        max_combinations: int = DEFAULT_MAX_COMBINATIONS
    ) -> WalkForwardComputation:
        started_at = datetime.now()
        clock = time.perf_counter()

        WalkForwardRunner.validate(config, max_combinations)
        if token is not None:
            token.raise_if_cancelled()

        ordered = sorted(trades, key=lambda t: (t.date_opened, t.time_opened))
        windows = WindowSplitter.segment(ordered, config)
        candidates = ParameterGrid.candidates(config.parameter_ranges)
        total_combinations = len(candidates) * len(windows)

        logger.info(
            "Walk-forward run: %d trades, %d windows, %d candidates per window, target=%s",
            len(ordered), len(windows), len(candidates), config.optimization_target
        )
        _emit(on_progress, WalkForwardProgressEvent(
            phase="segmenting",
            percent=_SEGMENTED_PCT,
            message=f"Segmented {len(windows)} windows",
            current_period=0,
            total_periods=len(windows),
            tested_combinations=0,
            total_combinations=total_combinations
        ))

        optimizer = WindowOptimizer(evaluator or ScenarioEvaluator(), config.optimization_target)
        outcomes = await WalkForwardRunner._optimize_windows(
            optimizer, windows, ordered, candidates, config, token,
            on_progress, max_workers or DEFAULT_MAX_WORKERS, total_combinations
        )

        _emit(on_progress, WalkForwardProgressEvent(
            phase="evaluating",
            percent=_WINDOWS_DONE_PCT,
            message="Aggregating results",
            current_period=len(windows),
            total_periods=len(windows),
            tested_combinations=sum(o.parameter_tests for o in outcomes),
            total_combinations=total_combinations
        ))

        periods = [o.period for o in outcomes if o.period is not None]
        summary, consistency, delta = PerformanceTracker.aggregate(periods)

        touched = {}
        for o in outcomes:
            for t in o.in_sample_trades + o.out_of_sample_trades:
                touched[id(t)] = t

        stats = WalkForwardRunStats(
            total_periods=len(windows),
            evaluated_periods=len(periods),
            skipped_periods=len(windows) - len(periods),
            total_parameter_tests=sum(o.parameter_tests for o in outcomes),
            analyzed_trades=len(touched),
            duration_ms=int((time.perf_counter() - clock) * 1000),
            consistency_score=consistency,
            average_performance_delta=delta
        )

        _emit(on_progress, WalkForwardProgressEvent(
            phase="completed",
            percent=100.0,
            message="Walk-forward analysis complete",
            current_period=len(windows),
            total_periods=len(windows),
            tested_combinations=stats.total_parameter_tests,
            total_combinations=total_combinations
        ))

        logger.info(
            "Walk-forward finished: %d/%d periods evaluated, %d parameter tests, robustness=%.3f (%d ms)",
            stats.evaluated_periods, stats.total_periods, stats.total_parameter_tests,
            summary.robustness_score, stats.duration_ms
        )

        return WalkForwardComputation(
            config=config,
            results=WalkForwardResults(periods=periods, summary=summary, stats=stats),
            started_at=started_at,
            completed_at=datetime.now()
        )

    @staticmethod
    async def _optimize_windows(
        optimizer: WindowOptimizer,
        windows: List[WalkForwardWindow],
        trades: List[Trade],
        candidates,
        config: WalkForwardConfig,
        token: Optional[CancellationToken],
        on_progress: Optional[ProgressCallback],
        max_workers: int,
        total_combinations: int
    ) -> List[WindowOutcome]:
        if not windows:
            return []

        # Stops sibling workers on failure without cancelling the caller's token
        worker_token = token.child() if token is not None else CancellationToken()
        loop = asyncio.get_running_loop()
        outcomes: List[Optional[WindowOutcome]] = [None] * len(windows)
        tested = 0
        finished = 0

        executor = ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(windows))))
        try:
            index_of = {
                loop.run_in_executor(executor, optimizer.optimize, w, trades, candidates, config, worker_token): i
                for i, w in enumerate(windows)
            }
            pending = set(index_of)

            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_EXCEPTION)

                errors = [f.exception() for f in done if f.exception() is not None]
                if errors:
                    worker_token.cancel()
                    if pending:
                        await asyncio.gather(*pending, return_exceptions=True)
                    # A real failure wins over the aborts it triggered in sibling workers
                    primary = next((e for e in errors if not isinstance(e, WalkForwardAbortedError)), errors[0])
                    if isinstance(primary, WalkForwardAbortedError):
                        logger.info("Walk-forward run aborted")
                    raise primary

                for f in sorted(done, key=lambda f: index_of[f]):
                    outcome = f.result()
                    outcomes[index_of[f]] = outcome
                    tested += outcome.parameter_tests
                    finished += 1
                    _emit(on_progress, WalkForwardProgressEvent(
                        phase="optimizing",
                        percent=_SEGMENTED_PCT + (_WINDOWS_DONE_PCT - _SEGMENTED_PCT) * finished / len(windows),
                        message=f"Optimized window {finished} of {len(windows)}",
                        current_period=finished,
                        total_periods=len(windows),
                        tested_combinations=tested,
                        total_combinations=total_combinations,
                        window=outcome.window
                    ))
        except asyncio.CancelledError:
            worker_token.cancel()
            raise
        finally:
            executor.shutdown(wait=False)

        return outcomes

def _emit(callback: Optional[ProgressCallback], event: WalkForwardProgressEvent):
    if callback is not None:
        callback(event)
