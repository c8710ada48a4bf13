from pydantic import BaseModel, Field
from typing import List, Optional
from src.forward_engine.models.trade_models import Trade
from src.forward_engine.models.walkforward_models import WalkForwardConfig

class WalkForwardRunRequest(BaseModel):
    trades: List[Trade]
    config: WalkForwardConfig
    timeout_seconds: Optional[float] = Field(default=None, gt=0)
    notes: Optional[str] = None

class AutoConfigRequest(BaseModel):
    trades: List[Trade]
    preset: Optional[str] = None  # applied before sizing windows to the log

class UpdateNotesRequest(BaseModel):
    notes: Optional[str] = None
