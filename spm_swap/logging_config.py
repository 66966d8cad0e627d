"""
Logging Configuration — One handler on the root logger, text or JSON.

Text output is meant for a terminal running `install` by hand; JSON output
is one object per line for CI logs and wrappers that parse the run.

## Environment Variables

- LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
- LOG_FORMAT: json, text (default: text)

## Usage

    from spm_swap.logging_config import setup_logging

    setup_logging()                 # from LOG_LEVEL / LOG_FORMAT
    setup_logging("DEBUG", "json")  # explicit
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import IO, Any, Dict, Optional

# Attributes passed through ``extra=`` that are worth keeping in JSON lines
CONTEXT_FIELDS = ("url", "dependency", "manifest")


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record:
    {"ts": "...", "level": "INFO", "logger": "spm_swap.mirror.store", "thread": "...", "message": "..."}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }
        entry.update({k: getattr(record, k) for k in CONTEXT_FIELDS if hasattr(record, k)})
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class HumanFormatter(logging.Formatter):
    """
    Terminal output:
    12:34:56 INFO    [store       ] [mirror] cloned: https://... @ abc123
    """

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, color: bool = False):
        super().__init__()
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        level = f"{record.levelname:7}"
        if self.color:
            level = f"{self.LEVEL_COLORS.get(record.levelno, '')}{level}{self.RESET}"

        # worker threads get their name appended so parallel syncs can be told apart
        source = record.name.rsplit(".", 1)[-1][:12]
        if record.threadName and record.threadName.startswith("mirror-sync"):
            source = f"{source}:{record.threadName.rsplit('_', 1)[-1]}"

        line = f"{stamp} {level} [{source:12}] {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    level: Optional[str] = None,
    format_type: Optional[str] = None,
    stream: Optional[IO[str]] = None,
) -> logging.Handler:
    """
    Replace any root handlers with a single stream handler.

    Args:
        level: Log level name; falls back to LOG_LEVEL, then INFO
        format_type: "json" or "text"; falls back to LOG_FORMAT, then text
        stream: Where to write (default: sys.stderr at call time)

    Returns:
        The installed handler
    """
    level_name = (level or os.environ.get("LOG_LEVEL") or "INFO").upper()
    fmt = (format_type or os.environ.get("LOG_FORMAT") or "text").lower()
    numeric_level = getattr(logging, level_name, logging.INFO)
    if stream is None:
        stream = sys.stderr

    formatter: logging.Formatter
    if fmt == "json":
        formatter = JSONFormatter()
    else:
        formatter = HumanFormatter(color=hasattr(stream, "isatty") and stream.isatty())

    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(numeric_level)
    root.addHandler(handler)

    logging.getLogger(__name__).debug(f"Logging configured: level={level_name}, format={fmt}")
    return handler
