from __future__ import annotations

import logging
import os
from typing import Optional


_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    raw = (level or os.getenv("LOG_LEVEL") or "INFO").strip().upper()
    logging.basicConfig(level=getattr(logging, raw, logging.INFO), format=_FORMAT)
    # requests/urllib3 are chatty at DEBUG; keep them at WARNING unless asked.
    if raw != "DEBUG":
        logging.getLogger("urllib3").setLevel(logging.WARNING)
