"""
Simulated miner agent for MinerMonitor
Pushes synthetic snapshots for a small fleet to the ingest endpoint
"""

import asyncio
import random
import time
from typing import Dict, List, Optional

import aiohttp
import structlog

from minermonitor.core.config import settings
from minermonitor.core.logging_config import configure_logging

logger = structlog.get_logger(__name__)

class SimulatedAgent:
    """Builds fake miner metrics and posts them on an interval"""

    def __init__(self, ingest_url: str, api_key: str, fleet_size: int = 3,
                 interval: float = 5, seed: Optional[int] = None):
        self.ingest_url = ingest_url
        self.api_key = api_key
        self.interval = interval
        self.session = None
        self.running = False
        self.random = random.Random(seed)
        self.started_at = time.time()
        self.fleet = [
            {"id": f"bitaxe-{i + 1:02d}", "name": f"Bitaxe {i + 1}", "base_th": self.random.uniform(0.9, 1.3)}
            for i in range(fleet_size)
        ]
        self.shares = {m["id"]: [0, 0] for m in self.fleet}

    async def start(self):
        """Start the push loop"""
        self.running = True
        logger.info("Starting simulated agent", url=self.ingest_url, miners=len(self.fleet))

        async with aiohttp.ClientSession() as session:
            self.session = session
            await self._push_loop()

    async def stop(self):
        """Stop the push loop"""
        self.running = False
        if self.session:
            await self.session.close()
        logger.info("Simulated agent stopped")

    async def _push_loop(self):
        """Main push loop"""
        while self.running:
            try:
                await self.push_once()
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                logger.error("Error pushing snapshots", error=str(e))
            await asyncio.sleep(self.interval)

    async def push_once(self) -> Dict:
        """Post one batch and return the server acknowledgement"""
        payload = {"miners": self.build_batch()}
        headers = {"Authorization": f"Bearer {self.api_key}"}

        async with self.session.post(self.ingest_url, json=payload, headers=headers) as response:
            body = await response.json()
            if response.status != 200:
                logger.warning("Ingest rejected", status=response.status, body=body)
            else:
                logger.info("Snapshots pushed", accepted=body.get("accepted"))
            return body

    def build_batch(self) -> List[Dict]:
        now = int(time.time() * 1000)
        return [self._simulate_miner(miner, now) for miner in self.fleet]

    def _simulate_miner(self, miner: Dict, now: int) -> Dict:
        """Simulate one snapshot around the miner's base hashrate"""
        rnd = self.random
        base = miner["base_th"]
        hashrate_1m = max(0.0, rnd.gauss(base, base * 0.05))
        power = rnd.uniform(14.0, 19.0)

        accepted, rejected = self.shares[miner["id"]]
        accepted += rnd.randint(0, 4)
        if rnd.random() < 0.02:
            rejected += 1
        self.shares[miner["id"]] = [accepted, rejected]

        return {
            "id": miner["id"],
            "name": miner["name"],
            "coin": "BTC",
            "metrics": {
                "ts": now,
                "hashrateTh": round(hashrate_1m, 3),
                "hashrate1mTh": round(hashrate_1m, 3),
                "hashrate10mTh": round(rnd.gauss(base, base * 0.02), 3),
                "hashrate1hTh": round(base, 3),
                "asicTempC": round(rnd.uniform(52.0, 68.0), 1),
                "cpuTempC": round(rnd.uniform(40.0, 50.0), 1),
                "powerW": round(power, 1),
                "fanRpm": rnd.randint(3000, 5200),
                "sharesAccepted": accepted,
                "sharesRejected": rejected,
                "bestDiff": rnd.randint(10 ** 5, 10 ** 9),
                "uptimeSec": int(time.time() - self.started_at),
                "stratumURL": "public-pool.io",
                "stratumPort": 21496,
                "stratumUser": "bc1qexampleaddress0000000000000000000000.worker",
                "ipv4": f"192.168.1.{100 + self.fleet.index(miner)}",
            },
        }

async def main():
    """Main entry point for the simulated agent"""
    configure_logging(settings.log_level)
    agent = SimulatedAgent(
        ingest_url=settings.agent_ingest_url,
        api_key=settings.api_key,
        fleet_size=settings.agent_fleet_size,
        interval=settings.agent_interval,
    )

    try:
        await agent.start()
    except KeyboardInterrupt:
        logger.info("Received interrupt signal")
    finally:
        await agent.stop()

if __name__ == "__main__":
    asyncio.run(main())
