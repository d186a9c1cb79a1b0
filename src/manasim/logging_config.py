"""Logging configuration with optional daily rotating JSON logs."""

import json
import logging
import logging.handlers
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

RUN_FIELDS = (
    "run_id",
    "iterations",
    "turns",
    "workers",
    "execution_time_ms",
    "hands_kept",
    "mulligans",
    "success",
    "error",
)


class JSONFormatter(logging.Formatter):
    """Formatter that outputs one JSON object per record."""

    def format(self, record):
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in RUN_FIELDS:
            log_data[name] = getattr(record, name, None)
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Remove None values to keep logs clean
        log_data = {k: v for k, v in log_data.items() if v is not None}

        return json.dumps(log_data, ensure_ascii=False)


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes", "on")


def setup_logging(
    level: Optional[str] = None,
    json_logs: Optional[bool] = None,
    log_dir: Optional[str] = None,
) -> logging.Logger:
    """
    Configure the "manasim" logger hierarchy.

    Args:
        level: Log level name (default MANASIM_LOG_LEVEL or INFO)
        json_logs: Emit JSON records (default MANASIM_LOG_JSON)
        log_dir: Write daily rotating files here instead of stderr
            (default MANASIM_LOG_DIR)

    Returns:
        The configured package logger
    """
    level = (level or os.getenv("MANASIM_LOG_LEVEL") or "INFO").upper()
    if json_logs is None:
        json_logs = _env_flag("MANASIM_LOG_JSON")
    log_dir = log_dir or os.getenv("MANASIM_LOG_DIR")

    if log_dir:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        handler = logging.handlers.TimedRotatingFileHandler(
            filename=str(path / "manasim.log"),
            when="midnight",
            interval=1,
            backupCount=30,  # Keep 30 days of logs
            encoding="utf-8",
            utc=True,
        )
        handler.suffix = "%Y-%m-%d"
    else:
        handler = logging.StreamHandler()

    if json_logs:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))

    logger = logging.getLogger("manasim")
    logger.setLevel(level)
    logger.handlers.clear()
    logger.addHandler(handler)

    # Prevent duplicate logs in parent loggers
    logger.propagate = False

    return logger


# Run-level events (start, completion, failure)
run_logger = logging.getLogger("manasim.runs")
