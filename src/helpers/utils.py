import logging
from datetime import datetime, timedelta

import pytz

_EPOCH = datetime(1970, 1, 1, tzinfo=pytz.UTC)


def utc_now() -> datetime:
    return datetime.now(pytz.UTC)


def to_millis(ts: datetime) -> int:
    """Converts a datetime to UTC millis. Naive datetimes are taken as UTC"""
    if ts.tzinfo is None:
        ts = pytz.UTC.localize(ts)
    return (ts - _EPOCH) // timedelta(milliseconds=1)


def from_millis(ts_millis: int) -> datetime:
    return _EPOCH + timedelta(milliseconds=ts_millis)


def now_millis() -> int:
    return to_millis(utc_now())


def configure_logging(level: int = logging.INFO):
    """Sets up console logging for the entry point scripts"""
    logging.basicConfig(level=level, format="%(asctime)s - %(message)s")
