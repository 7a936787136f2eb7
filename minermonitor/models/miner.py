"""
Miner snapshot model
"""

from sqlalchemy import Column, String, BigInteger, DateTime, JSON
from sqlalchemy.sql import func
from minermonitor.database.connection import Base

class MinerSnapshot(Base):
    """Latest known state for one miner"""

    __tablename__ = "miners"

    id = Column(String(255), primary_key=True)
    name = Column(String(255), nullable=False)
    coin = Column(String(100), nullable=False, default="Unknown")
    last_ts = Column(BigInteger, nullable=False, index=True)
    metrics = Column(JSON, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<MinerSnapshot(id={self.id}, name={self.name}, last_ts={self.last_ts})>"
