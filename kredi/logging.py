"""Logging setup for kredi.

Loan mutations log at INFO with the affected ids attached as
``extra={"extra": {"loan_id": ..., "account_id": ...}}``; the JSON formatter
lifts those ids to top-level keys so log pipelines can group by loan.
"""

import json
import logging
import sys
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from kredi.config import BRASILIA_TIMEZONE

STANDARD_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
NOISY_LOGGERS = ("confluent_kafka", "faker")


def setup_logging(
    level: str = "INFO",
    format_type: str = "standard",
    timezone: str = BRASILIA_TIMEZONE,
) -> None:
    """Configure the root logger for scripts and services using kredi.

    Parameters
    ----------
    level : str
        Log level name; unknown names fall back to INFO.
    format_type : str
        ``"standard"`` for human-readable lines or ``"json"`` for one JSON
        object per line.
    timezone : str
        Civil timezone of JSON timestamps, matching the loan calendar.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if format_type == "json":
        formatter: logging.Formatter = JsonFormatter(timezone)
    else:
        formatter = logging.Formatter(fmt=STANDARD_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)

    logging.getLogger("kredi").setLevel(log_level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class JsonFormatter(logging.Formatter):
    """One JSON object per record, timestamped in the loan calendar's timezone."""

    def __init__(self, timezone: str = BRASILIA_TIMEZONE) -> None:
        super().__init__()
        self.tz = ZoneInfo(timezone)

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, self.tz).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        ids = getattr(record, "extra", None)
        if isinstance(ids, dict):
            log_data.update(ids)

        return json.dumps(log_data, ensure_ascii=False, default=str)


def loan_extra(loan_id: str | None, **fields: Any) -> dict[str, Any]:
    """Keyword arguments for a log call carrying a loan id and related ids.

    Unpack into the call: ``logger.info(msg, **loan_extra(loan_id))``.
    """
    ids = {"loan_id": loan_id}
    ids.update({key: value for key, value in fields.items() if value is not None})
    return {"extra": {"extra": ids}}


def get_logger(name: str) -> logging.Logger:
    """Return the logger for ``name`` (usually ``__name__``)."""
    return logging.getLogger(name)
