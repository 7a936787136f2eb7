"""
Agent ingest endpoints
"""

import json

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
import structlog

from minermonitor.api.deps import get_normalizer, get_store
from minermonitor.core.security import require_api_key
from minermonitor.schemas.miner import IngestResponse, ClearResponse
from minermonitor.services.ingest import IngestionNormalizer
from minermonitor.store.memory import DeviceStore

logger = structlog.get_logger(__name__)
router = APIRouter()

def _too_large() -> JSONResponse:
    return JSONResponse(status_code=413, content={"error": "payload_too_large"})

@router.post("/ingest", response_model=IngestResponse, dependencies=[Depends(require_api_key)])
async def ingest(request: Request, normalizer: IngestionNormalizer = Depends(get_normalizer)):
    """Accept a batch of miner snapshots"""

    limit = request.app.state.settings.max_body_bytes
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > limit:
        return _too_large()

    body = await request.body()
    if len(body) > limit:
        return _too_large()

    try:
        payload = json.loads(body) if body.strip() else None
    except ValueError:
        logger.warning("Ingest body is not valid JSON", size=len(body))
        return JSONResponse(status_code=400, content={"error": "invalid_json"})

    try:
        result = await run_in_threadpool(normalizer.ingest, payload)
    except Exception as e:
        logger.error("Ingest error", exc_info=e)
        return JSONResponse(status_code=500, content={"error": "server_error"})

    return IngestResponse(count=result.submitted, submitted=result.submitted, accepted=result.accepted)

@router.delete("/miners", response_model=ClearResponse, dependencies=[Depends(require_api_key)])
def clear_miners(store: DeviceStore = Depends(get_store)):
    """Drop every miner and its history"""

    cleared = store.clear()
    logger.info("Miners cleared", count=cleared)
    return ClearResponse(cleared=cleared)
