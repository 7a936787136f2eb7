"""
Dashboard read endpoints

The read path is public: miner metrics are treated as non-sensitive.
"""

from fastapi import APIRouter, Depends

from minermonitor.api.deps import get_projector
from minermonitor.schemas.miner import MinerListResponse, FleetSummaryResponse
from minermonitor.services.projector import ReadProjector

router = APIRouter()

@router.get("/miners", response_model=MinerListResponse)
def list_miners(projector: ReadProjector = Depends(get_projector)):
    """Get every miner, sorted by name, with trailing history and online status"""

    return {"miners": [view.to_dict() for view in projector.list_miners()]}

@router.get("/summary", response_model=FleetSummaryResponse)
def fleet_summary(projector: ReadProjector = Depends(get_projector)):
    """Get fleet totals across all miners"""

    return projector.summary().to_dict()
