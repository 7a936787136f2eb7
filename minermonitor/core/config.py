"""
Configuration settings for MinerMonitor
"""

from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """Application settings"""

    # API Settings
    api_host: str = "0.0.0.0"
    api_port: int = 8080
    debug: bool = False

    # Ingest auth; an empty key rejects every write
    api_key: str = ""
    max_body_bytes: int = 1024 * 1024

    # Retention
    history_max_points: int = 5000
    history_read_limit: int = 2000

    # Persistence mirror
    persistence_enabled: bool = False
    database_url: str = "sqlite:///./minermonitor.db"

    # Simulated agent
    agent_ingest_url: str = "http://localhost:8080/v1/ingest"
    agent_interval: int = 5  # seconds
    agent_fleet_size: int = 3

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # A single read never serves more than the store retains
        self.history_read_limit = min(self.history_read_limit, self.history_max_points)

# Global settings instance
settings = Settings()
