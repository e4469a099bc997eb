"""Appends depth snapshots to one log file per symbol per UTC day.

Files are append only. When the UTC date changes we close the old file and
open a new one on the next write for that symbol, so a symbol that is quiet
over midnight rotates lazily. Old files are never touched again.

Each symbol has its own entry in a registry with its own lock. The lock
covers both the rotation decision and the write, so appends for one symbol
are serialized but different symbols never wait on each other.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import BinaryIO, Callable, Dict

import pytz

from data.depthlog.codec import encode
from data.depthlog.paths import log_path, symbol_dir
from helpers.constants import DEFAULT_DATA_DIR
from helpers.types.depth import DepthSnapshot, Symbol
from helpers.utils import utc_now

logger = logging.getLogger(__name__)


@dataclass
class SymbolLog:
    """Writer state for a single symbol

    day: the UTC date of the open file
    file: the open file handle, None until the first write
    """

    symbol: Symbol
    day: date | None = None
    file: BinaryIO | None = None
    lock: threading.Lock = field(
        default_factory=threading.Lock, compare=False, repr=False
    )

    def close(self):
        if self.file is None:
            return
        try:
            self.file.flush()
        finally:
            self.file.close()
            self.file = None


class RotatingLogWriter:
    """Public interface for writing the depth log"""

    def __init__(
        self,
        root: Path = DEFAULT_DATA_DIR,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.root = Path(root)
        # Returns the current time. Swapped out in tests to cross midnight
        self._clock = clock
        self._logs: Dict[Symbol, SymbolLog] = {}
        # Only guards adding entries to self._logs
        self._registry_lock = threading.Lock()

    def append(self, symbol: str, snapshot: DepthSnapshot) -> bool:
        """Writes a snapshot to today's file for the symbol and flushes it

        Returns False if the snapshot was dropped. We log and drop rather
        than raise so that one bad write doesn't stop collection"""
        symbol_log = self._get_log(Symbol(symbol))
        try:
            frame = encode(snapshot)
        except ValueError:
            logger.exception(
                "Could not encode snapshot %s for %s, dropping it",
                snapshot.last_update_id,
                symbol_log.symbol,
            )
            return False

        with symbol_log.lock:
            try:
                file = self._get_file(symbol_log)
                file.write(frame)
                file.flush()
            except OSError:
                logger.exception(
                    "Error writing snapshot %s for %s, dropping it",
                    snapshot.last_update_id,
                    symbol_log.symbol,
                )
                return False
        return True

    def current_path(self, symbol: str) -> Path | None:
        """Path of the file currently open for a symbol, if any"""
        symbol_log = self._logs.get(Symbol(symbol))
        if symbol_log is None or symbol_log.day is None or symbol_log.file is None:
            return None
        return log_path(self.root, symbol_log.symbol, symbol_log.day)

    def close(self):
        """Flushes and closes every open file"""
        with self._registry_lock:
            symbol_logs = list(self._logs.values())
        for symbol_log in symbol_logs:
            with symbol_log.lock:
                symbol_log.close()

    def __enter__(self) -> "RotatingLogWriter":
        return self

    def __exit__(self, *args):
        self.close()

    ########### Helpers #############

    def _get_log(self, symbol: Symbol) -> SymbolLog:
        with self._registry_lock:
            if symbol not in self._logs:
                self._logs[symbol] = SymbolLog(symbol)
            return self._logs[symbol]

    def _get_file(self, symbol_log: SymbolLog) -> BinaryIO:
        """Returns the file for today, rotating if the UTC date moved on.

        Must be called with symbol_log.lock held"""
        today = self._clock().astimezone(pytz.UTC).date()
        if symbol_log.file is not None and symbol_log.day == today:
            return symbol_log.file

        symbol_log.close()
        symbol_dir(self.root, symbol_log.symbol).mkdir(parents=True, exist_ok=True)
        path = log_path(self.root, symbol_log.symbol, today)
        symbol_log.file = open(path, "ab")
        symbol_log.day = today
        logger.info("Opened new data file for %s: %s", symbol_log.symbol, path)
        return symbol_log.file
