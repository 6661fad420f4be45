from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


load_dotenv()


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


class Settings:
    """Application settings loaded from environment variables.

    Keep all credentials and config centralized here. Values are read when the
    object is built, so tests can change the environment and clear the cache.
    """

    def __init__(self) -> None:
        self.app_env: str = os.getenv("APP_ENV", "development")
        self.google_api_key: Optional[str] = (
            os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY") or None
        )
        self.gemini_model: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
        self.temperature: float = _float_env("MODEL_TEMPERATURE", 0.7)
        self.top_p: float = _float_env("MODEL_TOP_P", 0.95)
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
        self.api_url: str = os.getenv(
            "CHAT_HELPER_API_URL", "http://127.0.0.1:8000/api/chat"
        )
        self.data_dir: Path = Path(
            os.getenv("CHAT_HELPER_DATA_DIR", "~/.chat_helper")
        ).expanduser()

    @property
    def is_development(self) -> bool:
        return self.app_env.lower() in {"dev", "development", "local"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
