import asyncio
from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session
from typing import List
import logging
import uuid
from config import config
from database import get_db
from schemas import WalkForwardRunRequest, AutoConfigRequest, UpdateNotesRequest
from src.forward_engine.models.walkforward_models import WalkForwardAnalysis
from src.forward_engine.adaptive.auto_config import (
    DEFAULT_WALK_FORWARD_CONFIG,
    WALK_FORWARD_PRESETS,
    apply_preset,
    calculate_auto_config,
    calculate_trade_frequency,
)
from src.forward_engine.adaptive.cancellation import CancellationToken
from src.forward_engine.adaptive.errors import WalkForwardAbortedError, WalkForwardValidationError
from src.forward_engine.adaptive.walkforward_runner import WalkForwardRunner
from src.forward_engine.metrics.portfolio_stats import PortfolioStatsCalculator
from src.forward_engine.metrics.scenario import ScenarioEvaluator
from src.forward_engine.reporting.analysis_export import AnalysisExporter
from src.services import analysis_store

router = APIRouter(prefix="/walk-forward", tags=["walk-forward"])
logger = logging.getLogger(__name__)


def _require_analysis(db: Session, analysis_id: str) -> WalkForwardAnalysis:
    analysis = analysis_store.get_analysis(db, analysis_id)
    if analysis is None:
        raise HTTPException(status_code=404, detail=f"Analysis {analysis_id} not found")
    return analysis


@router.post("/blocks/{block_id}/analyses", response_model=WalkForwardAnalysis)
async def run_walk_forward(block_id: str, req: WalkForwardRunRequest, db: Session = Depends(get_db)):
    """
    Runs a walk-forward analysis over the submitted trade log and stores it under the block.
    """
    timeout = req.timeout_seconds or config.WALK_FORWARD_TIMEOUT_SECONDS
    token = CancellationToken.with_timeout(timeout)
    evaluator = ScenarioEvaluator(PortfolioStatsCalculator(
        risk_free_rate=config.RISK_FREE_RATE,
        annualization_factor=config.ANNUALIZATION_FACTOR
    ))

    try:
        computation = await WalkForwardRunner.run(
            req.trades,
            req.config,
            token=token,
            evaluator=evaluator,
            max_workers=max(1, config.WALK_FORWARD_MAX_WORKERS),
            max_combinations=config.WALK_FORWARD_MAX_COMBINATIONS
        )
    except WalkForwardValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except WalkForwardAbortedError:
        raise HTTPException(
            status_code=408,
            detail=f"Walk-forward analysis aborted (time limit {timeout:g}s exceeded)."
        )
    except Exception:
        logger.exception("Walk-forward analysis failed for block_id=%s", block_id)
        raise HTTPException(status_code=500, detail="Walk-forward analysis failed.")

    analysis = WalkForwardAnalysis(
        id=str(uuid.uuid4()),
        block_id=block_id,
        config=computation.config,
        results=computation.results,
        created_at=computation.completed_at,
        notes=req.notes
    )
    # The SQLAlchemy session blocks; keep it off the event loop
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, analysis_store.save_analysis, db, analysis)


@router.get("/blocks/{block_id}/analyses", response_model=List[WalkForwardAnalysis])
def list_block_analyses(block_id: str, db: Session = Depends(get_db)):
    """Analysis history for a block, newest first."""
    return analysis_store.get_analyses_by_block(db, block_id)


@router.delete("/blocks/{block_id}/analyses")
def delete_block_analyses(block_id: str, db: Session = Depends(get_db)):
    deleted = analysis_store.delete_analyses_by_block(db, block_id)
    return {"status": "deleted", "block_id": block_id, "deleted": deleted}


@router.get("/analyses/{analysis_id}", response_model=WalkForwardAnalysis)
def get_analysis(analysis_id: str, db: Session = Depends(get_db)):
    return _require_analysis(db, analysis_id)


@router.patch("/analyses/{analysis_id}", response_model=WalkForwardAnalysis)
def update_analysis_notes(analysis_id: str, req: UpdateNotesRequest, db: Session = Depends(get_db)):
    analysis = analysis_store.update_analysis_notes(db, analysis_id, req.notes)
    if analysis is None:
        raise HTTPException(status_code=404, detail=f"Analysis {analysis_id} not found")
    return analysis


@router.delete("/analyses/{analysis_id}")
def delete_analysis(analysis_id: str, db: Session = Depends(get_db)):
    if not analysis_store.delete_analysis(db, analysis_id):
        raise HTTPException(status_code=404, detail=f"Analysis {analysis_id} not found")
    return {"status": "deleted", "id": analysis_id}


@router.get("/analyses/{analysis_id}/export")
def export_analysis(analysis_id: str, format: str = "json", db: Session = Depends(get_db)):
    """Download an analysis as JSON or CSV."""
    if format not in ("json", "csv"):
        raise HTTPException(status_code=400, detail="format must be 'json' or 'csv'")

    analysis = _require_analysis(db, analysis_id)
    filename = f"walk-forward-{analysis.block_id}-{analysis.id[:8]}.{format}"
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
    if format == "csv":
        return Response(content=AnalysisExporter.to_csv(analysis), media_type="text/csv", headers=headers)
    return Response(content=AnalysisExporter.to_json(analysis), media_type="application/json", headers=headers)


@router.get("/presets")
def list_presets():
    return {
        "default": DEFAULT_WALK_FORWARD_CONFIG,
        "presets": WALK_FORWARD_PRESETS,
    }


@router.post("/auto-config")
def suggest_config(req: AutoConfigRequest):
    """
    Suggests window sizes and trade floors from the cadence of a trade log.
    """
    frequency = calculate_trade_frequency(req.trades)
    if frequency is None:
        raise HTTPException(status_code=400, detail="At least two trades are required to auto-configure.")

    base = DEFAULT_WALK_FORWARD_CONFIG
    if req.preset:
        try:
            base = apply_preset(base, req.preset)
        except WalkForwardValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))

    return {"frequency": frequency, "config": calculate_auto_config(frequency, base)}
