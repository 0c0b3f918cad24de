"""Logging configuration for PixelForge.

Provides a setup function, a module-level logger factory, and a helper
that strips embedded image payloads from request bodies before they are
logged.  Uses Python's built-in logging module.
"""

from __future__ import annotations

import json
import logging
import os
import sys
import threading
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

DEFAULT_FORMAT = "%(levelname)-5s | %(name)-24s | %(message)s"
VERBOSE_FORMAT = "%(asctime)s | %(levelname)-5s | %(name)-24s | %(message)s"
REDACTED_IMAGE = "[IMAGE_DATA]"

# Context attributes copied into JSON lines when passed via ``extra=``.
_CONTEXT_FIELDS = ("provider", "model", "stage", "prediction_id")
_SETUP_LOCK = threading.Lock()


class JsonFormatter(logging.Formatter):
    """JSON log formatter for machine-readable aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in _CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def setup_logging(
    level: int = logging.INFO,
    verbose: bool = False,
    log_file: str | None = None,
    json_logs: bool = False,
) -> None:
    """Configure logging for the pixelforge package.

    Repeated calls are safe: existing handlers are reused rather than
    duplicated.

    Args:
        level: Logging level (default: INFO).
        verbose: If True, include timestamps in console output.
        log_file: Optional file path to write logs to (in addition to stderr).
        json_logs: Emit structured JSON log lines when True.
    """
    with _SETUP_LOCK:
        logger = logging.getLogger("pixelforge")
        logger.setLevel(level)

        formatter: logging.Formatter = (
            JsonFormatter()
            if json_logs
            else logging.Formatter(VERBOSE_FORMAT if verbose else DEFAULT_FORMAT)
        )

        console = next(
            (
                h
                for h in logger.handlers
                if type(h) is logging.StreamHandler
                and getattr(h, "stream", None) is sys.stderr
            ),
            None,
        )
        if console is None:
            console = logging.StreamHandler(sys.stderr)
            logger.addHandler(console)
        console.setFormatter(formatter)

        if log_file:
            target = os.path.abspath(str(log_file))
            file_handler = next(
                (
                    h
                    for h in logger.handlers
                    if isinstance(h, logging.FileHandler)
                    and getattr(h, "baseFilename", None) == target
                ),
                None,
            )
            if file_handler is None:
                file_handler = logging.FileHandler(log_file)
                logger.addHandler(file_handler)
            file_handler.setFormatter(
                JsonFormatter() if json_logs else logging.Formatter(VERBOSE_FORMAT)
            )


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a PixelForge module.

    Args:
        name: Module name (e.g., ``"orchestrator"``, ``"artifacts"``).

    Returns:
        A logger instance under the ``pixelforge`` namespace.
    """
    return logging.getLogger(f"pixelforge.{name}")


def redact_payload(payload: Mapping[str, Any], max_length: int = 4096) -> dict[str, Any]:
    """Return a copy of *payload* safe to write to logs.

    Data URLs and oversized strings (inline base64 images) are replaced
    by a placeholder.  Nested mappings are processed recursively.

    Args:
        payload: A provider request body or ``input`` mapping.
        max_length: Strings longer than this are treated as image data.

    Returns:
        A shallow-copied dict with image payloads replaced.
    """
    cleaned: dict[str, Any] = {}
    for key, value in payload.items():
        if isinstance(value, Mapping):
            cleaned[key] = redact_payload(value, max_length)
        elif isinstance(value, str) and (
            value.startswith("data:") or len(value) > max_length
        ):
            cleaned[key] = REDACTED_IMAGE
        elif isinstance(value, (bytes, bytearray)):
            cleaned[key] = REDACTED_IMAGE
        else:
            cleaned[key] = value
    return cleaned
