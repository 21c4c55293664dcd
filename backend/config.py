import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from dotenv import load_dotenv

from constants import TICKET_NUMBER_START

load_dotenv(Path(__file__).resolve().parent / ".env")


def _get_list(name: str, fallback: str = "") -> List[str]:
    raw_value = os.getenv(name, fallback)
    if not raw_value:
        return []
    return [item.strip() for item in raw_value.split(",") if item.strip()]


def _get_bool(name: str, fallback: bool = False) -> bool:
    raw_value = os.getenv(name)
    if raw_value is None:
        return fallback
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./laundry.db")
    database_echo: bool = _get_bool("DATABASE_ECHO")
    sqlite_busy_timeout_seconds: float = float(
        os.getenv("SQLITE_BUSY_TIMEOUT_SECONDS", "30")
    )
    auth_url: str | None = os.getenv("AUTH_URL")
    auth_api_key: str | None = os.getenv("AUTH_API_KEY")
    storage_racks: str = os.getenv("STORAGE_RACKS", "")
    ticket_number_start: int = int(
        os.getenv("TICKET_NUMBER_START", str(TICKET_NUMBER_START))
    )
    allowed_origins: List[str] = field(
        default_factory=lambda: _get_list("ALLOWED_ORIGINS", "*")
    )


settings = Settings()
