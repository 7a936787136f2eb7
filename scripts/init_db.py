#!/usr/bin/env python3
"""
Initialize the persistence database, optionally with sample miners
"""

import argparse
import os
import random
import sys
import time

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from minermonitor.core.config import settings
from minermonitor.database.connection import create_db_engine, create_session_factory, init_database
from minermonitor.services.ingest import IngestionNormalizer
from minermonitor.store.memory import DeviceStore
from minermonitor.store.persistence import SqlMinerRepository

def create_sample_data(database_url: str, points: int = 120):
    """Write a few sample miners with a short minute-spaced history"""

    engine = create_db_engine(database_url)
    init_database(engine)

    repository = SqlMinerRepository(create_session_factory(engine), max_points=settings.history_max_points)
    store = DeviceStore(max_points=settings.history_max_points, persistence=repository)
    normalizer = IngestionNormalizer(store)

    sample_miners = [
        {"id": "bitaxe-01", "name": "Bitaxe Gamma", "coin": "BTC", "base_th": 1.2, "power": 17.5},
        {"id": "bitaxe-02", "name": "Bitaxe Supra", "coin": "BTC", "base_th": 0.6, "power": 12.0},
        {"id": "nerdqaxe-01", "name": "NerdQAxe++", "coin": "BCH", "base_th": 4.8, "power": 72.0},
    ]

    now = int(time.time() * 1000)
    for i in range(points):
        ts = now - (points - 1 - i) * 60000
        batch = []
        for miner in sample_miners:
            hashrate = round(random.gauss(miner["base_th"], miner["base_th"] * 0.04), 3)
            batch.append({
                "id": miner["id"],
                "name": miner["name"],
                "coin": miner["coin"],
                "metrics": {
                    "ts": ts,
                    "hashrate1mTh": hashrate,
                    "asicTempC": round(random.uniform(55, 66), 1),
                    "powerW": miner["power"],
                    "sharesAccepted": i * 3,
                    "sharesRejected": i // 40,
                },
            })
        normalizer.ingest({"miners": batch})

    print(f"Created {len(sample_miners)} sample miners with {points} history points each")
    engine.dispose()

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--database-url", default=settings.database_url)
    parser.add_argument("--sample", action="store_true", help="also write sample miners")
    args = parser.parse_args()

    if args.sample:
        create_sample_data(args.database_url)
    else:
        init_database(create_db_engine(args.database_url))
        print("Database tables created")
