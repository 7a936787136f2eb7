"""
Read projector: builds the dashboard's miner list and fleet summary
"""

import math
import unicodedata
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from minermonitor.services.ingest import Clock, now_ms
from minermonitor.store.memory import DeviceStore, Snapshot, Metrics

ONLINE_THRESHOLD_MS = 60000
HISTORY_READ_LIMIT = 2000

def metric_number(value: Any) -> Optional[float]:
    """Numeric reading of a metric value; None for absent, bool or non-numeric values"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None

def first_number(metrics: Metrics, *keys: str) -> Optional[float]:
    """First key present (not None) wins, matching the dashboard's ``a ?? b`` fallbacks"""
    for key in keys:
        if metrics.get(key) is not None:
            return metric_number(metrics[key])
    return None

def is_online(last_ts: Any, now: float) -> bool:
    ts = metric_number(last_ts)
    return (now - (ts or 0)) < ONLINE_THRESHOLD_MS

def efficiency_jth(metrics: Metrics) -> Optional[float]:
    """Joules per terahash: reported value if numeric, else power / hashrate"""
    reported = metric_number(metrics.get("efficiencyJTH"))
    if reported is not None:
        return reported
    power = metric_number(metrics.get("powerW"))
    hashrate = first_number(metrics, "hashrate1mTh", "hashrateTh")
    if power is None or hashrate is None or hashrate <= 0:
        return None
    return power / hashrate

def _strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c))

def sort_key(snapshot: Snapshot) -> Tuple[str, str, str]:
    """Locale-style ordering: accent and case insensitive first, lowercase before uppercase, then id"""
    label = snapshot.name or snapshot.id
    return (_strip_accents(label).casefold(), label.swapcase(), snapshot.id)


@dataclass
class MinerView:
    id: str
    name: str
    coin: str
    last_ts: Any
    metrics: Metrics
    history: List[Dict[str, Any]]
    online: bool
    efficiency_jth: Optional[float]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "coin": self.coin,
            "last_ts": self.last_ts,
            "metrics": self.metrics,
            "history": self.history,
            "online": self.online,
            "efficiency_jth": self.efficiency_jth,
        }


@dataclass
class FleetSummary:
    total: int
    online: int
    total_hashrate_th: float
    shares_accepted: float
    shares_rejected: float
    avg_temp_c: Optional[float]
    temp_samples: int

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.__dict__)


class ReadProjector:
    """Pure view over the store at a point in time"""

    def __init__(self, store: DeviceStore, history_limit: int = HISTORY_READ_LIMIT, clock: Clock = now_ms):
        self.store = store
        self.history_limit = min(history_limit, store.max_points)
        self.clock = clock

    def sorted_snapshots(self) -> List[Snapshot]:
        return sorted(self.store.list_snapshots(), key=sort_key)

    def list_miners(self) -> List[MinerView]:
        now = self.clock()
        views = []
        for snapshot in self.sorted_snapshots():
            views.append(MinerView(
                id=snapshot.id,
                name=snapshot.name,
                coin=snapshot.coin,
                last_ts=snapshot.last_ts,
                metrics=snapshot.metrics,
                history=self.store.get_history(snapshot.id, self.history_limit),
                online=is_online(snapshot.last_ts, now),
                efficiency_jth=efficiency_jth(snapshot.metrics),
            ))
        return views

    def summary(self) -> FleetSummary:
        now = self.clock()
        snapshots = self.store.list_snapshots()

        online = 0
        total_hash = 0.0
        accepted = rejected = 0.0
        temp_sum, temp_count = 0.0, 0

        for snapshot in snapshots:
            metrics = snapshot.metrics
            if is_online(snapshot.last_ts, now):
                online += 1

            hashrate = first_number(metrics, "hashrate1mTh", "hashrateTh")
            if hashrate is not None:
                total_hash += hashrate

            shares = metric_number(metrics.get("sharesAccepted"))
            if shares is not None:
                accepted += shares
            shares = metric_number(metrics.get("sharesRejected"))
            if shares is not None:
                rejected += shares

            temp = first_number(metrics, "asicTempC", "cpuTempC")
            if temp is not None:
                temp_sum += temp
                temp_count += 1

        return FleetSummary(
            total=len(snapshots),
            online=online,
            total_hashrate_th=total_hash,
            shares_accepted=accepted,
            shares_rejected=rejected,
            avg_temp_c=(temp_sum / temp_count) if temp_count else None,
            temp_samples=temp_count,
        )
