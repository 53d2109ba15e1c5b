"""Date display conversion for the report/incident date streams."""

from __future__ import annotations

import logging
from datetime import datetime

from pydantic import BaseModel

logger = logging.getLogger(__name__)

DATABASE_DATE_FORMAT = "%Y-%m-%d"
UI_DATE_FORMAT = "%d/%m/%Y"


class DateRules(BaseModel):
    """Program-level date settings that drive the date pickers."""

    model_config = {"frozen": True}

    display_incident_date: bool = False
    allow_future_report_dates: bool = False
    allow_future_incident_dates: bool = False


def to_ui_date(
    value: str,
    *,
    database_format: str = DATABASE_DATE_FORMAT,
    ui_format: str = UI_DATE_FORMAT,
) -> str:
    """Reformat a stored date for display.

    Unparsable input is logged and returned unchanged so the view still shows
    something.
    """
    try:
        return datetime.strptime(value, database_format).strftime(ui_format)
    except ValueError:
        logger.error(
            "Unable to parse date. Expected format: %s. Input: %s", database_format, value
        )
        return value


def to_database_date(
    value: str,
    *,
    database_format: str = DATABASE_DATE_FORMAT,
    ui_format: str = UI_DATE_FORMAT,
) -> str:
    """Normalize a date entered in either format to the storage format.

    Raises:
        ValueError: If *value* matches neither format.
    """
    for fmt in (database_format, ui_format):
        try:
            return datetime.strptime(value, fmt).strftime(database_format)
        except ValueError:
            continue
    msg = f"Invalid date {value!r}; expected {database_format} or {ui_format}"
    raise ValueError(msg)
