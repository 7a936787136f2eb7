"""
Database connection and session management
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
import structlog

logger = structlog.get_logger(__name__)

# Create base class for models
Base = declarative_base()

def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """Create the engine for the persistence mirror"""
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        # In-memory SQLite must share one connection or each session sees an empty DB
        if ":memory:" in database_url or database_url.rstrip("/") == "sqlite:":
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, echo=echo, **kwargs)

    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_recycle=300,
        echo=echo
    )

def create_session_factory(engine: Engine) -> sessionmaker:
    """Create session factory"""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)

def init_database(engine: Engine):
    """Initialize database tables"""
    try:
        # Import all models to ensure they are registered
        from minermonitor.models import miner, history  # noqa

        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error("Failed to initialize database", error=str(e))
        raise
