#!/usr/bin/env python3
"""
Lotto Statistics API Entrypoint

All application wiring lives in src/api.py; this file configures logging
and starts uvicorn. Reads HOST, PORT, LOG_LEVEL from environment (loaded
from .env when available).
"""
import os
import sys

from dotenv import load_dotenv
from loguru import logger

load_dotenv()

log_level = os.getenv("LOG_LEVEL", "info").lower()
# Uvicorn supported levels: critical, error, warning, info, debug, trace
if log_level not in {"critical", "error", "warning", "info", "debug", "trace"}:
    log_level = "info"

logger.remove()
logger.add(sys.stderr, level=log_level.upper())

from src.api import app  # noqa: E402

if __name__ == "__main__":
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")

    port_str = os.getenv("PORT", "8000")
    try:
        port = int(port_str)
    except ValueError:
        port = 8000

    uvicorn.run(app, host=host, port=port, log_level=log_level)
