from __future__ import annotations

import os
from typing import Optional


DEFAULT_SEASON = 2025


def load_env() -> None:
    """
    Load env vars from dotenv file if present.

    - If ENV_FILE is set, we load that path explicitly.
    - Otherwise we call load_dotenv() which searches for a .env file.
    """
    from dotenv import load_dotenv

    env_file = os.getenv("ENV_FILE")
    if env_file:
        load_dotenv(dotenv_path=env_file, override=False)
        return

    load_dotenv(override=False)


def getenv_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def getenv_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def getenv_str(name: str, default: Optional[str] = None) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw


def current_season() -> int:
    return getenv_int("FF_SEASON", DEFAULT_SEASON)
