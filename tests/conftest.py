import os
import sys

import pytest

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from minermonitor.core.config import Settings
from minermonitor.store.memory import DeviceStore

NOW_MS = 1_700_000_000_000

class FixedClock:
    """Callable clock the tests can move by hand"""

    def __init__(self, now=NOW_MS):
        self.now = now

    def __call__(self):
        return self.now

@pytest.fixture
def clock():
    return FixedClock()

@pytest.fixture
def store():
    return DeviceStore(max_points=5000)

@pytest.fixture
def test_settings():
    return Settings(api_key="test-key", _env_file=None)

@pytest.fixture
def auth_headers():
    return {"Authorization": "Bearer test-key"}

@pytest.fixture
def mock_batch():
    return {
        "miners": [
            {"id": "", "name": "nameless", "metrics": {"hashrateTh": 1.0}},
            {
                "id": "bitaxe-01",
                "name": "Bitaxe Gamma",
                "coin": "BTC",
                "metrics": {
                    "ts": NOW_MS - 1000,
                    "hashrate1mTh": 1.21,
                    "asicTempC": 61.5,
                    "powerW": 18.15,
                    "sharesAccepted": 120,
                    "sharesRejected": 2,
                    "stratumURL": "public-pool.io",
                },
            },
        ]
    }
