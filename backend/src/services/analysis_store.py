"""
Analysis Store - persistence for walk-forward analyses, keyed by block
"""
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session
from models import WalkForwardAnalysisRecord
from src.forward_engine.models.walkforward_models import WalkForwardAnalysis


def _to_model(record: WalkForwardAnalysisRecord) -> WalkForwardAnalysis:
    return WalkForwardAnalysis.model_validate(record.to_dict())


def save_analysis(db: Session, analysis: WalkForwardAnalysis) -> WalkForwardAnalysis:
    """
    Insert (or replace) an analysis. Config and results are stored as JSON documents.
    """
    record = db.get(WalkForwardAnalysisRecord, analysis.id)
    if record is None:
        record = WalkForwardAnalysisRecord(id=analysis.id)
        db.add(record)

    record.block_id = analysis.block_id
    record.config = analysis.config.model_dump(mode="json")
    record.results = analysis.results.model_dump(mode="json")
    record.created_at = analysis.created_at
    record.updated_at = analysis.updated_at
    record.notes = analysis.notes
    db.commit()
    return analysis


def get_analysis(db: Session, analysis_id: str) -> Optional[WalkForwardAnalysis]:
    record = db.get(WalkForwardAnalysisRecord, analysis_id)
    return _to_model(record) if record else None


def get_analyses_by_block(db: Session, block_id: str) -> List[WalkForwardAnalysis]:
    """History for a block, newest first."""
    records = db.query(WalkForwardAnalysisRecord).filter(
        WalkForwardAnalysisRecord.block_id == block_id
    ).order_by(WalkForwardAnalysisRecord.created_at.desc()).all()
    return [_to_model(r) for r in records]


def update_analysis_notes(db: Session, analysis_id: str, notes: Optional[str]) -> Optional[WalkForwardAnalysis]:
    record = db.get(WalkForwardAnalysisRecord, analysis_id)
    if record is None:
        return None
    record.notes = notes
    record.updated_at = datetime.now()
    db.commit()
    return _to_model(record)


def delete_analysis(db: Session, analysis_id: str) -> bool:
    record = db.get(WalkForwardAnalysisRecord, analysis_id)
    if record is None:
        return False
    db.delete(record)
    db.commit()
    return True


def delete_analyses_by_block(db: Session, block_id: str) -> int:
    """Returns the number of analyses removed."""
    deleted = db.query(WalkForwardAnalysisRecord).filter(
        WalkForwardAnalysisRecord.block_id == block_id
    ).delete(synchronize_session=False)
    db.commit()
    return deleted
