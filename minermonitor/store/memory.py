"""
In-memory device store: latest snapshot plus bounded history per miner
"""

from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field, asdict
from itertools import islice
from threading import RLock
from typing import Any, Deque, Dict, Iterable, Iterator, List, Optional, Union
import structlog

logger = structlog.get_logger(__name__)

HISTORY_MAX_POINTS = 5000
DEFAULT_COIN = "Unknown"

Metrics = Dict[str, Any]
Timestamp = Union[int, float]

@dataclass
class Snapshot:
    """Latest known state for one miner"""
    id: str
    name: str
    last_ts: Timestamp
    metrics: Metrics = field(default_factory=dict)
    coin: str = DEFAULT_COIN

    def copy(self) -> "Snapshot":
        return Snapshot(self.id, self.name, self.last_ts, dict(self.metrics), self.coin)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class DeviceStore:
    """
    Thread-safe keyed storage with bounded-history retention.

    Every read and write takes the same re-entrant lock, so callers can group
    several mutations with ``locked()`` and readers never see a half-applied
    entry. An optional persistence repository is written through after each
    in-memory mutation; it is expected to log and absorb its own failures.
    """

    def __init__(self, max_points: int = HISTORY_MAX_POINTS, persistence=None):
        if max_points < 1:
            raise ValueError("max_points must be at least 1")
        self.max_points = max_points
        self._snapshots: Dict[str, Snapshot] = {}
        self._history: Dict[str, Deque[Dict[str, Any]]] = {}
        self._lock = RLock()
        self.persistence = persistence

    @contextmanager
    def locked(self) -> Iterator["DeviceStore"]:
        with self._lock:
            yield self

    def upsert_snapshot(self, miner_id: str, name: str, ts: Timestamp,
                        metrics: Metrics, coin: str = DEFAULT_COIN) -> None:
        """Replace the snapshot for ``miner_id`` wholesale. Fields missing from the new metrics are dropped."""
        if not miner_id:
            return
        snapshot = Snapshot(id=miner_id, name=name, last_ts=ts, metrics=dict(metrics), coin=coin)
        with self._lock:
            self._snapshots[miner_id] = snapshot
            if self.persistence is not None:
                self.persistence.save_snapshot(snapshot)

    def append_history(self, miner_id: str, point: Dict[str, Any]) -> None:
        """Append to the tail of the buffer; the oldest points fall off past ``max_points``."""
        if not miner_id:
            return
        with self._lock:
            buffer = self._history.get(miner_id)
            if buffer is None:
                buffer = deque(maxlen=self.max_points)
                self._history[miner_id] = buffer
            buffer.append(dict(point))
            if self.persistence is not None:
                self.persistence.append_point(miner_id, point)

    def list_snapshots(self) -> List[Snapshot]:
        with self._lock:
            return [s.copy() for s in self._snapshots.values()]

    def get_snapshot(self, miner_id: str) -> Optional[Snapshot]:
        with self._lock:
            snapshot = self._snapshots.get(miner_id)
            return snapshot.copy() if snapshot is not None else None

    def get_history(self, miner_id: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Trailing ``limit`` points in ascending arrival order (all of them when limit is None)."""
        if limit is not None and limit <= 0:
            return []
        with self._lock:
            buffer = self._history.get(miner_id)
            if not buffer:
                return []
            start = 0 if limit is None else max(len(buffer) - limit, 0)
            return [dict(p) for p in islice(buffer, start, None)]

    def clear(self) -> int:
        with self._lock:
            removed = len(self._snapshots)
            self._snapshots.clear()
            self._history.clear()
            if self.persistence is not None:
                self.persistence.clear()
        logger.info("Store cleared", devices=removed)
        return removed

    def load(self, snapshot: Snapshot, points: Iterable[Dict[str, Any]]) -> None:
        """Hydrate one miner from persistence without writing back."""
        with self._lock:
            self._snapshots[snapshot.id] = snapshot.copy()
            self._history[snapshot.id] = deque((dict(p) for p in points), maxlen=self.max_points)

    def __len__(self) -> int:
        with self._lock:
            return len(self._snapshots)
