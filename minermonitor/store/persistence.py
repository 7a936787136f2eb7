"""
SQLAlchemy persistence mirror for the device store.

Writes are best-effort: a database failure is logged and rolled back, and the
in-memory store keeps the update regardless.
"""

from typing import Any, Dict, List, Tuple
import structlog
from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from minermonitor.models.history import MinerHistoryPoint
from minermonitor.models.miner import MinerSnapshot
from minermonitor.store.memory import Snapshot, HISTORY_MAX_POINTS

logger = structlog.get_logger(__name__)

# Signed 64-bit range of the BigInteger timestamp columns
TS_MIN = -(2 ** 63)
TS_MAX = 2 ** 63 - 1

# Errors a single mirror write may raise; none of them may reach the in-memory store
WRITE_ERRORS = (SQLAlchemyError, OverflowError, ValueError, TypeError)

def column_ts(ts) -> int:
    """Epoch-ms clamped into the column range; the exact value stays in the JSON payload"""
    return max(TS_MIN, min(TS_MAX, int(ts)))

class SqlMinerRepository:
    """Mirrors snapshots and capped history into the miners / miner_history tables"""

    def __init__(self, session_factory: sessionmaker, max_points: int = HISTORY_MAX_POINTS):
        self.session_factory = session_factory
        self.max_points = max_points

    def save_snapshot(self, snapshot: Snapshot) -> bool:
        session = self.session_factory()
        try:
            session.merge(MinerSnapshot(
                id=snapshot.id,
                name=snapshot.name,
                coin=snapshot.coin,
                last_ts=column_ts(snapshot.last_ts),
                metrics=snapshot.metrics
            ))
            session.commit()
            return True
        except WRITE_ERRORS as e:
            session.rollback()
            logger.error("Persistence write failed", action="save_snapshot",
                         miner_id=snapshot.id, error=str(e))
            return False
        finally:
            session.close()

    def append_point(self, miner_id: str, point: Dict[str, Any]) -> bool:
        session = self.session_factory()
        try:
            session.add(MinerHistoryPoint(miner_id=miner_id, ts=column_ts(point["ts"]), point=point))
            session.flush()

            # Trim everything older than the newest max_points rows
            cutoff = (
                session.query(MinerHistoryPoint.id)
                .filter(MinerHistoryPoint.miner_id == miner_id)
                .order_by(MinerHistoryPoint.id.desc())
                .offset(self.max_points)
                .limit(1)
                .scalar()
            )
            if cutoff is not None:
                session.execute(
                    delete(MinerHistoryPoint).where(
                        MinerHistoryPoint.miner_id == miner_id,
                        MinerHistoryPoint.id <= cutoff
                    )
                )
            session.commit()
            return True
        except WRITE_ERRORS as e:
            session.rollback()
            logger.error("Persistence write failed", action="append_point",
                         miner_id=miner_id, error=str(e))
            return False
        finally:
            session.close()

    def clear(self) -> bool:
        session = self.session_factory()
        try:
            session.execute(delete(MinerHistoryPoint))
            session.execute(delete(MinerSnapshot))
            session.commit()
            return True
        except WRITE_ERRORS as e:
            session.rollback()
            logger.error("Persistence write failed", action="clear", error=str(e))
            return False
        finally:
            session.close()

    def load_all(self) -> List[Tuple[Snapshot, List[Dict[str, Any]]]]:
        """Read every stored miner with its trailing history, oldest point first"""
        session = self.session_factory()
        try:
            result = []
            for row in session.query(MinerSnapshot).all():
                points = (
                    session.query(MinerHistoryPoint)
                    .filter(MinerHistoryPoint.miner_id == row.id)
                    .order_by(MinerHistoryPoint.id.desc())
                    .limit(self.max_points)
                    .all()
                )
                snapshot = Snapshot(
                    id=row.id,
                    name=row.name,
                    last_ts=row.last_ts,
                    metrics=dict(row.metrics or {}),
                    coin=row.coin
                )
                result.append((snapshot, [dict(p.point) for p in reversed(points)]))
            return result
        finally:
            session.close()

def hydrate_store(store, repository: SqlMinerRepository) -> int:
    """Load persisted miners into the in-memory store; returns the number restored"""
    restored = repository.load_all()
    for snapshot, points in restored:
        store.load(snapshot, points)
    logger.info("Store hydrated from database", devices=len(restored))
    return len(restored)
