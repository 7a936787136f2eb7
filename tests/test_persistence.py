import os
import sys
import unittest
from unittest.mock import MagicMock

from sqlalchemy.exc import OperationalError

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from minermonitor.database.connection import create_db_engine, create_session_factory, init_database
from minermonitor.models import MinerHistoryPoint, MinerSnapshot
from minermonitor.services.ingest import IngestionNormalizer
from minermonitor.store.memory import DeviceStore, Snapshot
from minermonitor.store.persistence import SqlMinerRepository, hydrate_store, column_ts, TS_MAX, TS_MIN

NOW = 1_700_000_000_000

class TestSqlMinerRepository(unittest.TestCase):
    """Test cases for the SQL persistence mirror"""

    def setUp(self):
        """Set up an in-memory SQLite database"""
        self.engine = create_db_engine("sqlite:///:memory:")
        init_database(self.engine)
        self.session_factory = create_session_factory(self.engine)
        self.repository = SqlMinerRepository(self.session_factory, max_points=3)
        self.store = DeviceStore(max_points=3, persistence=self.repository)
        self.normalizer = IngestionNormalizer(self.store, clock=lambda: NOW)

    def tearDown(self):
        self.engine.dispose()

    def count(self, model):
        session = self.session_factory()
        try:
            return session.query(model).count()
        finally:
            session.close()

    def test_snapshot_upsert_keeps_one_row(self):
        self.normalizer.ingest({"miners": [{"id": "A", "metrics": {"x": 1}}]})
        self.normalizer.ingest({"miners": [{"id": "A", "name": "Rig A", "metrics": {"y": 2}}]})

        self.assertEqual(self.count(MinerSnapshot), 1)
        snapshot, _ = self.repository.load_all()[0]
        self.assertEqual(snapshot, Snapshot("A", "Rig A", NOW, {"y": 2}, "Unknown"))

    def test_history_trimmed_to_cap(self):
        for ts in range(1, 6):
            self.normalizer.ingest({"miners": [{"id": "A", "metrics": {"ts": ts}}]})
        self.normalizer.ingest({"miners": [{"id": "B", "metrics": {"ts": 9}}]})

        self.assertEqual(self.count(MinerHistoryPoint), 4)
        history = dict((s.id, points) for s, points in self.repository.load_all())
        self.assertEqual([p["ts"] for p in history["A"]], [3, 4, 5])
        self.assertEqual([p["ts"] for p in history["B"]], [9])

    def test_hydrate_store(self):
        self.normalizer.ingest({"miners": [
            {"id": "A", "coin": "BTC", "metrics": {"ts": 10, "hashrateTh": 1.1}},
            {"id": "B", "metrics": {"ts": 20, "stratumURL": "pool"}},
        ]})

        restored = DeviceStore(max_points=3)
        self.assertEqual(hydrate_store(restored, self.repository), 2)

        self.assertEqual(restored.get_snapshot("A"), self.store.get_snapshot("A"))
        self.assertEqual(restored.get_history("B"), [{"ts": 20, "stratumURL": "pool"}])
        self.assertIsNone(restored.persistence)

    def test_clear(self):
        self.normalizer.ingest({"miners": [{"id": "A"}, {"id": "B"}]})
        self.store.clear()

        self.assertEqual(self.count(MinerSnapshot), 0)
        self.assertEqual(self.count(MinerHistoryPoint), 0)

    def test_write_failure_keeps_memory_update(self):
        """A database error is rolled back and logged; the in-memory write stands"""
        session = MagicMock()
        session.commit.side_effect = OperationalError("INSERT", {}, Exception("database is locked"))
        trim_query = session.query.return_value.filter.return_value.order_by.return_value
        trim_query.offset.return_value.limit.return_value.scalar.return_value = None
        repository = SqlMinerRepository(lambda: session, max_points=3)
        store = DeviceStore(max_points=3, persistence=repository)

        accepted = IngestionNormalizer(store, clock=lambda: NOW).ingest({"miners": [{"id": "A"}]}).accepted

        self.assertEqual(accepted, 1)
        self.assertEqual(store.get_snapshot("A").last_ts, NOW)
        self.assertEqual(store.get_history("A"), [{"ts": NOW}])
        self.assertEqual(session.rollback.call_count, 2)
        self.assertEqual(session.close.call_count, 2)

    def test_out_of_range_timestamp_does_not_break_batch(self):
        """A finite ts beyond the BigInteger range still stores every entry in memory"""
        result = self.normalizer.ingest({"miners": [
            {"id": "A", "metrics": {"ts": 1e20}},
            {"id": "B"},
        ]})

        self.assertEqual(result.accepted, 2)
        self.assertEqual(self.store.get_snapshot("A").last_ts, 10 ** 20)
        self.assertEqual(self.store.get_history("A"), [{"ts": 10 ** 20}])
        self.assertEqual(self.store.get_snapshot("B").last_ts, NOW)
        self.assertEqual(self.store.get_history("B"), [{"ts": NOW}])

        rows = dict((s.id, s.last_ts) for s, _ in self.repository.load_all())
        self.assertEqual(rows, {"A": TS_MAX, "B": NOW})

    def test_unexpected_write_error_is_absorbed(self):
        session = MagicMock()
        session.merge.side_effect = OverflowError("Python int too large to convert to SQLite INTEGER")
        session.add.side_effect = TypeError("unsupported value")
        store = DeviceStore(max_points=3, persistence=SqlMinerRepository(lambda: session, max_points=3))

        IngestionNormalizer(store, clock=lambda: NOW).ingest({"miners": [{"id": "A"}, {"id": "B"}]})

        self.assertEqual(len(store), 2)
        self.assertEqual(store.get_history("B"), [{"ts": NOW}])
        self.assertEqual(session.rollback.call_count, 4)

    def test_column_ts_clamps(self):
        self.assertEqual(column_ts(NOW), NOW)
        self.assertEqual(column_ts(1.5e3), 1500)
        self.assertEqual(column_ts(1e20), TS_MAX)
        self.assertEqual(column_ts(-1e20), TS_MIN)

if __name__ == '__main__':
    unittest.main()
