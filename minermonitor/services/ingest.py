"""
Ingestion normalizer: turns one agent batch into store mutations
"""

import math
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union
import structlog

from minermonitor.store.memory import DeviceStore, DEFAULT_COIN

logger = structlog.get_logger(__name__)

Clock = Callable[[], Union[int, float]]

class IngestPayloadError(ValueError):
    """The batch as a whole cannot be processed"""


@dataclass
class IngestResult:
    submitted: int
    accepted: int


def now_ms() -> int:
    return int(time.time() * 1000)

def resolve_timestamp(raw: Any, fallback_ms: Union[int, float]) -> Union[int, float]:
    """Finite epoch-ms from ``raw``, otherwise ``fallback_ms``."""
    if raw is None or isinstance(raw, bool):
        return fallback_ms
    if isinstance(raw, (int, float)):
        value = float(raw)
    elif isinstance(raw, str) and raw.strip():
        try:
            value = float(raw.strip())
        except ValueError:
            return fallback_ms
    else:
        return fallback_ms

    if not math.isfinite(value):
        return fallback_ms
    return int(value) if value.is_integer() else value


class IngestionNormalizer:
    """
    Validates and normalizes agent snapshots, then records them in the store.

    A malformed entry (no usable id) is skipped without affecting the rest of
    the batch. Each accepted entry's upsert and history append happen under
    the store lock, so no other writer can interleave between the two.
    """

    def __init__(self, store: DeviceStore, clock: Clock = now_ms):
        self.store = store
        self.clock = clock

    def ingest(self, payload: Any) -> IngestResult:
        miners = payload.get("miners") if isinstance(payload, dict) else None
        if miners is None:
            miners = []
        if not isinstance(miners, (list, tuple)):
            raise IngestPayloadError(f"'miners' must be a list, got {type(miners).__name__}")

        received_at = self.clock()
        accepted = 0
        for entry in miners:
            if self.ingest_entry(entry, received_at):
                accepted += 1

        if accepted < len(miners):
            logger.info("Skipped malformed entries", skipped=len(miners) - accepted)
        logger.debug("Batch ingested", submitted=len(miners), accepted=accepted)
        return IngestResult(submitted=len(miners), accepted=accepted)

    def ingest_entry(self, entry: Any, received_at: Optional[Union[int, float]] = None) -> bool:
        """Normalize and store one entry; returns False when it was skipped"""
        if not isinstance(entry, dict):
            return False

        miner_id = str(entry.get("id") or "").strip()
        if not miner_id:
            return False

        name = str(entry.get("name") or miner_id)
        coin = str(entry.get("coin") or "").strip() or DEFAULT_COIN

        metrics = entry.get("metrics")
        if not isinstance(metrics, dict):
            metrics = {}

        if received_at is None:
            received_at = self.clock()
        ts = resolve_timestamp(metrics.get("ts"), received_at)

        point: Dict[str, Any] = dict(metrics)
        point["ts"] = ts

        with self.store.locked():
            self.store.upsert_snapshot(miner_id, name, ts, metrics, coin=coin)
            self.store.append_history(miner_id, point)
        return True
