from datetime import datetime, timedelta

from src.forward_engine.adaptive.performance_tracker import PerformanceTracker
from src.forward_engine.metrics.portfolio_stats import PortfolioStatsCalculator
from src.forward_engine.models.walkforward_models import (
    WalkForwardAnalysis,
    WalkForwardConfig,
    WalkForwardPeriod,
    WalkForwardResults,
    WalkForwardRunStats,
)
from src.services import analysis_store


def _analysis(analysis_id: str, block_id: str, created_at: datetime) -> WalkForwardAnalysis:
    stats = PortfolioStatsCalculator.empty_stats()
    period = WalkForwardPeriod(
        in_sample_start=datetime(2024, 1, 1),
        in_sample_end=datetime(2024, 1, 21),
        out_of_sample_start=datetime(2024, 1, 21),
        out_of_sample_end=datetime(2024, 1, 31),
        optimal_parameters={"kellyMultiplier": 1.25},
        in_sample_metrics=stats,
        out_of_sample_metrics=stats,
        target_metric_in_sample=120.0,
        target_metric_out_of_sample=None,
        parameter_tests=5,
    )
    summary, consistency, delta = PerformanceTracker.aggregate([period])
    return WalkForwardAnalysis(
        id=analysis_id,
        block_id=block_id,
        config=WalkForwardConfig(
            in_sample_days=20,
            out_of_sample_days=10,
            step_size_days=10,
            parameter_ranges={"kellyMultiplier": (0.5, 1.5, 0.25)},
        ),
        results=WalkForwardResults(
            periods=[period],
            summary=summary,
            stats=WalkForwardRunStats(
                total_periods=1,
                evaluated_periods=1,
                skipped_periods=0,
                total_parameter_tests=5,
                analyzed_trades=12,
                duration_ms=3,
                consistency_score=consistency,
                average_performance_delta=delta,
            ),
        ),
        created_at=created_at,
    )


def test_save_and_get_round_trip(db_session):
    original = _analysis("a-1", "block-1", datetime(2024, 3, 1, 9, 0))
    analysis_store.save_analysis(db_session, original)

    loaded = analysis_store.get_analysis(db_session, "a-1")

    assert loaded.block_id == "block-1"
    assert loaded.config == original.config
    assert loaded.results.periods[0].optimal_parameters == {"kellyMultiplier": 1.25}
    assert loaded.results.periods[0].target_metric_out_of_sample is None
    assert loaded.results.stats.analyzed_trades == 12
    assert loaded.notes is None


def test_get_missing_analysis(db_session):
    assert analysis_store.get_analysis(db_session, "missing") is None


def test_history_is_newest_first_and_scoped_to_block(db_session):
    base = datetime(2024, 3, 1, 9, 0)
    analysis_store.save_analysis(db_session, _analysis("old", "block-1", base))
    analysis_store.save_analysis(db_session, _analysis("new", "block-1", base + timedelta(hours=1)))
    analysis_store.save_analysis(db_session, _analysis("other", "block-2", base + timedelta(hours=2)))

    history = analysis_store.get_analyses_by_block(db_session, "block-1")

    assert [a.id for a in history] == ["new", "old"]


def test_update_notes(db_session):
    analysis_store.save_analysis(db_session, _analysis("a-1", "block-1", datetime(2024, 3, 1)))

    updated = analysis_store.update_analysis_notes(db_session, "a-1", "too few OOS trades in Q1")

    assert updated.notes == "too few OOS trades in Q1"
    assert updated.updated_at is not None
    assert analysis_store.get_analysis(db_session, "a-1").notes == "too few OOS trades in Q1"
    assert analysis_store.update_analysis_notes(db_session, "missing", "x") is None


def test_delete_analysis(db_session):
    analysis_store.save_analysis(db_session, _analysis("a-1", "block-1", datetime(2024, 3, 1)))

    assert analysis_store.delete_analysis(db_session, "a-1") is True
    assert analysis_store.get_analysis(db_session, "a-1") is None
    assert analysis_store.delete_analysis(db_session, "a-1") is False


def test_delete_block_history(db_session):
    base = datetime(2024, 3, 1)
    analysis_store.save_analysis(db_session, _analysis("a-1", "block-1", base))
    analysis_store.save_analysis(db_session, _analysis("a-2", "block-1", base + timedelta(days=1)))
    analysis_store.save_analysis(db_session, _analysis("b-1", "block-2", base))

    assert analysis_store.delete_analyses_by_block(db_session, "block-1") == 2
    assert analysis_store.get_analyses_by_block(db_session, "block-1") == []
    assert len(analysis_store.get_analyses_by_block(db_session, "block-2")) == 1
