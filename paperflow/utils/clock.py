# paperflow/utils/clock.py
from datetime import datetime

import pytz
from flask import current_app, has_app_context

DEFAULT_TIMEZONE = "Asia/Kolkata"


def get_timezone():
    name = DEFAULT_TIMEZONE
    if has_app_context():
        name = current_app.config.get("PAPERFLOW_TIMEZONE", DEFAULT_TIMEZONE)
    return pytz.timezone(name)


def local_now():
    """Current time in the institution's timezone (used for every audit stamp)."""
    return datetime.now(get_timezone())


def to_local(moment: datetime) -> datetime:
    """
    Naive datetimes come back from the database as local wall-clock time,
    so they are localized rather than converted.
    """
    tz = get_timezone()
    if moment.tzinfo is None:
        return tz.localize(moment)
    return moment.astimezone(tz)
