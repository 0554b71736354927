# backend/booking_engine/config.py

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[2]  # repository root


class Settings(BaseSettings):
    database_url: str = "sqlite:///./data/sqlite/booking_engine.db"
    redis_url: Optional[str] = None

    # Create tables on startup (SQLite / dev). Production uses alembic.
    auto_create_schema: bool = True

    salon_timezone: str = "Europe/Madrid"

    # Reservation / payments
    deposit_percent: float = 50.0
    require_deposit: bool = True
    reservation_lock_timeout: float = 5.0
    reservation_lock_ttl: float = 30.0
    min_advance_minutes: int = 0
    horizon_days: int = 60
    slot_cache_ttl_seconds: int = 86400

    payments_api_url: Optional[str] = None
    payments_api_key: Optional[str] = None
    payments_timeout: float = 10.0

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        extra="ignore",
    )

    @property
    def resolved_database_url(self) -> str:
        url = self.database_url
        if url.startswith("sqlite:///./"):
            # Relative SQLite paths are resolved against the repository root
            relative_path = url.replace("sqlite:///./", "")
            absolute_path = BASE_DIR / relative_path
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            return f"sqlite:///{absolute_path}"
        return url


settings = Settings()
