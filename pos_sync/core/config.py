from datetime import datetime
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DB_URL: str

    POS_API_BASE_URL: str = "https://api.loyverse.com/v1.0"
    POS_API_TOKEN: str
    POS_PAGE_SIZE: int = 250
    POS_MAX_PAGES: int = 40
    POS_API_TIMEOUT_SECONDS: float = 30.0

    AI_SERVICE_URL: str
    AI_SERVICE_TIMEOUT_SECONDS: float = 60.0

    # first-run window start when sync_log is empty; unset means fail
    SYNC_EPOCH: Optional[datetime] = None
    SYNC_TIMEOUT_SECONDS: float = 300.0
    SYNC_LOCK_KEY: int = 7_305_823_541

    HOST: str = "0.0.0.0"
    PORT: int = 8000

    CORS_ORIGINS: str = "*"
    LOG_LEVEL: str = "INFO"

    @property
    def cors_origins(self) -> List[str]:
        parts = [p.strip() for p in self.CORS_ORIGINS.split(",")]
        return [p for p in parts if p] or ["*"]

    class Config:
        env_file = ".env"

settings = Settings()
