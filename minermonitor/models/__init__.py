# Models package
from .miner import MinerSnapshot
from .history import MinerHistoryPoint

__all__ = ['MinerSnapshot', 'MinerHistoryPoint']
