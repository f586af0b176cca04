# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_discovery

import logging
import os
import sys
from pathlib import Path
from typing import Any

from loguru import logger
from opentelemetry import trace

__all__ = ["logger", "configure_logging"]

_TEXT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

_LOGURU_LEVELS = frozenset({"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"})


class InterceptHandler(logging.Handler):
    """
    Forwards standard library records (httpx, httpcore) into the loguru sinks.
    The originating stdlib logger name is kept as `extra["stdlib_logger"]`.
    """

    def emit(self, record: logging.LogRecord) -> None:
        level: str | int = record.levelno
        if record.levelname in _LOGURU_LEVELS:
            level = record.levelname

        # Attribute the message to the caller of the stdlib logger, not to logging internals
        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename in (logging.__file__, __file__):
            frame = frame.f_back
            depth += 1

        logger.bind(stdlib_logger=record.name).opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def trace_id_injector(record: dict[str, Any]) -> None:
    """
    Loguru patcher adding the active OpenTelemetry trace and span ids to `extra`.
    """
    ctx = trace.get_current_span().get_span_context()
    if ctx.is_valid:
        record["extra"]["trace_id"] = format(ctx.trace_id, "032x")
        record["extra"]["span_id"] = format(ctx.span_id, "016x")


def _resolve_level(raw: str | None) -> str:
    level = (raw or "INFO").upper()
    try:
        logger.level(level)
    except ValueError:
        return "INFO"
    return level


def configure_logging(level: str | None = None, json_output: bool | None = None) -> None:
    """
    Configures the logger.

    Explicit arguments win over the environment. Recognised variables:
    `COREASON_LOG_LEVEL` (default INFO), `COREASON_LOG_JSON` (default false)
    and `COREASON_LOG_DIR` (default ``logs``).

    Args:
        level: Loguru level name.
        json_output: Emit serialized JSON records to stdout instead of text to stderr.
    """
    log_level = _resolve_level(level or os.getenv("COREASON_LOG_LEVEL"))
    if json_output is None:
        json_output = os.getenv("COREASON_LOG_JSON", "false").lower() == "true"

    logger.configure(handlers=[], patcher=trace_id_injector)  # type: ignore[arg-type]

    if json_output:
        logger.add(sys.stdout, level=log_level, serialize=True)
    else:
        logger.add(sys.stderr, level=log_level, format=_TEXT_FORMAT)

    # File sink is best effort; read-only containers simply skip it
    log_dir = Path(os.getenv("COREASON_LOG_DIR", "logs"))
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_dir / "discovery.log",
            rotation="500 MB",
            retention="10 days",
            serialize=True,
            enqueue=True,
            level=log_level,
        )
    except (PermissionError, OSError):
        pass

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    numeric_level = logging.getLevelName(log_level)
    logging.getLogger().setLevel(numeric_level if isinstance(numeric_level, int) else logging.INFO)


configure_logging()
