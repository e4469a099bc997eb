from datetime import date
from pathlib import Path

from helpers.constants import LOG_DATE_FORMAT, LOG_FILE_SUFFIX
from helpers.types.depth import Symbol
from helpers.utils import from_millis


def utc_date_of_millis(ts_millis: int) -> date:
    """UTC calendar date of a millisecond timestamp"""
    return from_millis(ts_millis).date()


def symbol_dir(root: Path, symbol: Symbol) -> Path:
    """Directory holding every day of data for a symbol"""
    return root / symbol


def log_path(root: Path, symbol: Symbol, day: date) -> Path:
    """Path to the log file for a symbol on a UTC day

    For example: data/ethusdt/ethusdt_2025-08-17.bin"""
    return symbol_dir(root, symbol) / (
        f"{symbol}_{day.strftime(LOG_DATE_FORMAT)}{LOG_FILE_SUFFIX}"
    )
