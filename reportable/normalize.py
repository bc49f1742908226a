from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any

import pytz

from .config import ReportConfig

logger = logging.getLogger(__name__)


def to_local(dt: datetime, tz_name: str) -> datetime:
    tz = pytz.timezone(tz_name)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=pytz.UTC)
    return dt.astimezone(tz)


def fmt_date(d: date, config: ReportConfig) -> str:
    return d.strftime(config.date_format)


def fmt_dt(dt: datetime, config: ReportConfig) -> str:
    if dt.tzinfo is not None:
        dt = to_local(dt, config.timezone)
    return dt.strftime(config.datetime_format)


def fmt_number(value: float, config: ReportConfig) -> str:
    s = f"{value:.{config.float_precision}f}"
    if "." in s:
        s = s.rstrip("0").rstrip(".")
    return s


def format_cell(value: Any, config: ReportConfig) -> str:
    """Text shown for a table cell. Values stay typed until this point."""
    if value is None:
        return config.empty_cell
    if isinstance(value, bool):
        return "Yes" if value else "No"
    # datetime is a date subclass
    if isinstance(value, datetime):
        return fmt_dt(value, config)
    if isinstance(value, date):
        return fmt_date(value, config)
    if isinstance(value, (float, Decimal)):
        return fmt_number(float(value), config)
    if isinstance(value, (list, tuple, set)):
        return ", ".join(format_cell(v, config) for v in value)
    return str(value).strip()


def humanize_column(name: str) -> str:
    """``author.first_name`` -> ``Author First Name``."""
    parts = [p for chunk in str(name).split(".") for p in chunk.split("_") if p]
    return " ".join(p[:1].upper() + p[1:] for p in parts)


def column_label(name: str, config: ReportConfig) -> str:
    if name in config.column_labels:
        return config.column_labels[name]
    return humanize_column(name) if config.humanize_headers else name


def escape_markup(text: str) -> str:
    """Escape text for ReportLab Paragraph mini-markup."""
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
