"""
History point model for the per-miner time series
"""

from sqlalchemy import Column, String, BigInteger, Integer, JSON
from minermonitor.database.connection import Base

class MinerHistoryPoint(Base):
    """One history point; arrival order is the autoincrement id"""

    __tablename__ = "miner_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    miner_id = Column(String(255), nullable=False, index=True)
    ts = Column(BigInteger, nullable=False)
    point = Column(JSON, nullable=False)

    def __repr__(self):
        return f"<MinerHistoryPoint(miner_id={self.miner_id}, ts={self.ts})>"
