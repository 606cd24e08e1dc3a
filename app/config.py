import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

AUTH_MODES = ("oauth", "appid")


@dataclass(frozen=True)
class Settings:
    client_id: Optional[str]
    client_secret: Optional[str]
    auth_mode: str = "oauth"
    port: int = 3000
    timeout: float = 20


def _env(name: str) -> Optional[str]:
    value = os.getenv(name, "").strip()
    return value or None


def load_settings() -> Settings:
    """
    Read settings from the environment (.env already loaded).
    Credentials are not validated here; a missing one fails on first lookup.
    """
    auth_mode = os.getenv("EBAY_AUTH_MODE", "oauth").strip().lower()
    if auth_mode not in AUTH_MODES:
        raise ValueError(f"EBAY_AUTH_MODE must be one of: {', '.join(AUTH_MODES)}")

    return Settings(
        client_id=_env("EBAY_CLIENT_ID"),
        client_secret=_env("EBAY_CLIENT_SECRET"),
        auth_mode=auth_mode,
        port=int(os.getenv("PORT", "3000")),
        timeout=float(os.getenv("EBAY_TIMEOUT", "20")),
    )
