"""
Miner Pydantic schemas
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List, Union

class MinerResponse(BaseModel):
    """Schema for one miner in the list response"""
    id: str = Field(..., description="Unique miner identifier")
    name: str = Field(..., description="Display label, defaults to the id")
    coin: str = Field("Unknown", description="Coin classification tag")
    last_ts: Union[int, float] = Field(..., description="Most recent observation, epoch milliseconds")
    metrics: Dict[str, Any] = Field(default_factory=dict, description="Latest metrics exactly as reported")
    history: List[Dict[str, Any]] = Field(default_factory=list, description="Trailing history points, oldest first")
    online: bool = Field(..., description="Seen within the last 60 seconds")
    efficiency_jth: Optional[float] = Field(None, description="Joules per terahash")

class MinerListResponse(BaseModel):
    """Schema for miner list response"""
    miners: List[MinerResponse]

class IngestResponse(BaseModel):
    """Schema for ingest acknowledgement"""
    ok: bool = True
    count: int = Field(..., description="Entries submitted in the batch")
    submitted: int = Field(..., description="Entries submitted in the batch")
    accepted: int = Field(..., description="Entries with a usable id that were stored")

class ClearResponse(BaseModel):
    """Schema for clear-all acknowledgement"""
    ok: bool = True
    cleared: int

class FleetSummaryResponse(BaseModel):
    """Schema for fleet summary"""
    total: int
    online: int
    total_hashrate_th: float
    shares_accepted: float
    shares_rejected: float
    avg_temp_c: Optional[float] = None
    temp_samples: int
