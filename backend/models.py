from sqlalchemy import Column, String, DateTime, Text, JSON
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class WalkForwardAnalysisRecord(Base):
    """Stored walk-forward analysis for a block (trade log)."""
    __tablename__ = "walk_forward_analyses"

    id = Column(String(36), primary_key=True)  # uuid4 string
    block_id = Column(String(255), nullable=False, index=True)
    config = Column(JSON, nullable=False)
    results = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "block_id": self.block_id,
            "config": self.config,
            "results": self.results,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "notes": self.notes,
        }
