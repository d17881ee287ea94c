from __future__ import annotations

import logging
import os
import sys
from typing import Any, Optional, TextIO

from config.settings import get_settings


_INITIALIZED: bool = False

LOG_FORMAT = (
    "%(asctime)s %(levelname)s %(name)s %(message)s "
    "step=%(step)s status=%(status)s batch=%(batch)s duration_ms=%(duration_ms)s "
    "provider=%(provider)s error=%(error)s run_id=%(run_id)s"
)


class SafeExtraFormatter(logging.Formatter):
    """Formatter that tolerates missing extra fields by injecting defaults."""

    DEFAULTS: dict[str, Any] = {
        "step": "-",
        "status": "-",
        "batch": "-",
        "duration_ms": "-",
        "provider": "-",
        "error": "-",
        "run_id": "-",
    }

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        for key, value in self.DEFAULTS.items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return super().format(record)


class RunIdFilter(logging.Filter):
    """Tag records with the current RUN_ID so one run's lines can be grepped together."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "run_id"):
            record.run_id = os.getenv("RUN_ID") or "-"
        return True


def init_logging(level: Optional[str] = None, stream: Optional[TextIO] = None) -> None:
    global _INITIALIZED
    if _INITIALIZED:
        return

    log_level_str = (level or get_settings().log_level).upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    if not root_logger.handlers:
        # stdout carries the NDJSON profile stream
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setLevel(log_level)
        handler.addFilter(RunIdFilter())
        handler.setFormatter(SafeExtraFormatter(fmt=LOG_FORMAT))
        root_logger.addHandler(handler)

    # Provider SDKs log every HTTP request at INFO
    for noisy in ("httpx", "urllib3", "openai"):
        logging.getLogger(noisy).setLevel(max(log_level, logging.WARNING))

    _INITIALIZED = True
