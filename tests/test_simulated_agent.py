import asyncio
import os
import sys
import unittest

import aiohttp

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from minermonitor.collectors.simulated_agent import SimulatedAgent
from minermonitor.services.ingest import IngestionNormalizer
from minermonitor.store.memory import DeviceStore

class FakeResponse:
    def __init__(self, status, body):
        self.status = status
        self.body = body

    async def json(self):
        return self.body

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

class FakeSession:
    """Records posts and answers with a canned acknowledgement"""

    def __init__(self, status=200, body=None):
        self.status = status
        self.body = body or {"ok": True, "count": 2, "submitted": 2, "accepted": 2}
        self.posts = []

    def post(self, url, json=None, headers=None):
        self.posts.append({"url": url, "json": json, "headers": headers})
        return FakeResponse(self.status, self.body)

class FailingSession:
    """Raises the given errors in turn, then stops the agent"""

    def __init__(self, agent, errors):
        self.agent = agent
        self.errors = list(errors)
        self.calls = 0

    def post(self, url, json=None, headers=None):
        self.calls += 1
        if not self.errors:
            self.agent.running = False
            return FakeResponse(200, {"ok": True, "accepted": 0})
        raise self.errors.pop(0)

class TestSimulatedAgent(unittest.TestCase):
    """Test cases for the simulated push agent"""

    def setUp(self):
        """Set up test fixtures"""
        self.agent = SimulatedAgent("http://localhost:8080/v1/ingest", "secret", fleet_size=2, seed=7)

    def test_batch_shape(self):
        batch = self.agent.build_batch()

        self.assertEqual([m["id"] for m in batch], ["bitaxe-01", "bitaxe-02"])
        for miner in batch:
            metrics = miner["metrics"]
            self.assertIsInstance(metrics["ts"], int)
            self.assertGreater(metrics["hashrate1mTh"], 0)
            self.assertIn("asicTempC", metrics)
            self.assertIn("stratumURL", metrics)

    def test_share_counters_are_monotonic(self):
        first = self.agent.build_batch()[0]["metrics"]["sharesAccepted"]
        second = self.agent.build_batch()[0]["metrics"]["sharesAccepted"]
        self.assertGreaterEqual(second, first)

    def test_batch_is_accepted_by_normalizer(self):
        store = DeviceStore()
        result = IngestionNormalizer(store).ingest({"miners": self.agent.build_batch()})
        self.assertEqual(result.accepted, 2)
        self.assertEqual(store.get_snapshot("bitaxe-01").coin, "BTC")

    def test_push_once(self):
        session = FakeSession()
        self.agent.session = session

        body = asyncio.run(self.agent.push_once())

        self.assertEqual(body["accepted"], 2)
        self.assertEqual(len(session.posts), 1)
        post = session.posts[0]
        self.assertEqual(post["url"], "http://localhost:8080/v1/ingest")
        self.assertEqual(post["headers"], {"Authorization": "Bearer secret"})
        self.assertEqual(len(post["json"]["miners"]), 2)

    def test_push_rejected(self):
        self.agent.session = FakeSession(status=401, body={"error": "unauthorized"})
        body = asyncio.run(self.agent.push_once())
        self.assertEqual(body, {"error": "unauthorized"})

    def test_push_loop_survives_timeouts(self):
        """Timeouts and connection errors are logged and the loop keeps pushing"""
        self.agent.interval = 0
        self.agent.running = True
        session = FailingSession(self.agent, [asyncio.TimeoutError(), aiohttp.ClientConnectionError("refused")])
        self.agent.session = session

        asyncio.run(self.agent._push_loop())

        self.assertEqual(session.calls, 3)
        self.assertFalse(self.agent.running)

if __name__ == '__main__':
    unittest.main()
