"""Centralized logging service using loguru.

Every line carries a ``request_id`` extra. Request-scoped code logs through
``bind_request(request_id)`` so the correlation id is threaded explicitly
instead of being read from ambient state.
"""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from loguru import logger

from firecache.config import settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<magenta>{extra[request_id]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[request_id]} | "
    "{name}:{function}:{line} - {message}"
)

logger.remove()
logger.configure(extra={"request_id": "-"})

logger.add(
    sys.stderr,
    format=CONSOLE_FORMAT,
    level=settings.app_log_level.upper(),
    colorize=True,
)

if settings.log_dir:
    LOG_DIR = Path(settings.log_dir)
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    logger.add(
        LOG_DIR / "firecache_{time:YYYY-MM-DD}.log",
        format=FILE_FORMAT,
        level="DEBUG",
        rotation="00:00",
        retention="7 days",
        compression="zip",
    )

for logger_name in (
    "uvicorn",
    "uvicorn.error",
    "uvicorn.access",
    "fastapi",
    "sse_starlette.sse",
    "httpx",
    "httpcore",
    "openai._base_client",
    "asyncio",
):
    logging.getLogger(logger_name).setLevel(settings.noisy_log_level.upper())


def bind_request(request_id: str):
    """Return a logger bound to one request's correlation id."""
    return logger.bind(request_id=request_id)


def log_llm_call(
    log,
    model: str,
    caller: str,
    input_tokens: int = 0,
    output_tokens: int = 0,
    duration_ms: int = 0,
    error: Optional[str] = None,
) -> None:
    """Log a generation call through a request-bound logger."""
    call_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "model": model,
        "caller": caller,
        "input_tokens": input_tokens,
        "output_tokens": output_tokens,
        "total_tokens": input_tokens + output_tokens,
        "duration_ms": duration_ms,
        "status": "error" if error else "success",
        "error": error,
    }
    if error:
        log.error(f"LLM_CALL_FAILED: {call_data}")
    else:
        log.info(f"LLM_CALL: {call_data}")


def log_event(
    log,
    event_type: str,
    message: str,
    **kwargs,
) -> None:
    """Log a generic structured event."""
    event_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event_type": event_type,
        "message": message,
        **kwargs,
    }
    log.info(f"EVENT: {event_data}")
