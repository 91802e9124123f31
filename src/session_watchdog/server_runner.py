"""Helpers to launch the session watchdog service."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import uvicorn

from .config import WatchdogSettings
from .webapp import create_app


def run_server(
    *,
    host: str = "127.0.0.1",
    port: int = 8765,
    settings: Optional[WatchdogSettings] = None,
    log_level: str = "info",
    log_file: Optional[Path] = None,
) -> None:
    """Start the FastAPI service under uvicorn."""
    app = create_app(settings=settings or WatchdogSettings())

    if log_file is not None:
        attach_file_handler(log_file)

    logging.getLogger("uvicorn.error").setLevel(log_level.upper())
    uvicorn.run(app, host=host, port=port, log_level=log_level)


def attach_file_handler(log_file: Path) -> logging.Handler:
    """Mirror package logs into ``log_file``."""
    log_file = Path(log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file)
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    )
    logging.getLogger("session_watchdog").addHandler(handler)
    return handler
