"""Shows what the order book looked like at a point in time

Usage: python -m data.reading.depth ETHUSDT 2025-08-17T05:13:06 [depth]

The time can also be given as UTC millis."""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Tuple

from rich.console import Console
from rich.table import Table

from data.depthlog.reader import SnapshotLogReader
from helpers.config import DepthLogConfig
from helpers.constants import DEFAULT_DATA_DIR, DEFAULT_RENDER_DEPTH
from helpers.types.depth import DepthSnapshot, Symbol
from helpers.types.orderbook import OrderbookView
from helpers.utils import configure_logging, from_millis, to_millis

logger = logging.getLogger(__name__)


def parse_target(value: str) -> int:
    """Accepts UTC millis or an ISO 8601 time (naive times are UTC)"""
    if value.lstrip("-").isdigit():
        return int(value)
    return to_millis(datetime.fromisoformat(value))


def find_orderbook(
    symbol: str,
    target: datetime | int,
    root: Path = DEFAULT_DATA_DIR,
) -> Tuple[DepthSnapshot, OrderbookView] | None:
    """Finds the last snapshot at or before target and materializes it"""
    target_millis = target if isinstance(target, int) else to_millis(target)
    snapshot = SnapshotLogReader(root).find(symbol, target_millis)
    if snapshot is None:
        return None
    logger.info(
        "Found closest snapshot with event time %s (diff: %sms)",
        snapshot.event_time,
        target_millis - snapshot.event_time,
    )
    return snapshot, OrderbookView.from_snapshot(snapshot)


def generate_table(
    symbol: Symbol,
    target_millis: int,
    view: OrderbookView,
    depth: int = DEFAULT_RENDER_DEPTH,
) -> Table:
    """Asks on top (lowest first), then bids (highest first)"""
    table = Table(
        show_header=True,
        header_style="bold",
        title=f"Order Book for {symbol.upper()} at {from_millis(target_millis)}",
    )
    table.add_column("Side", style="cyan", width=6)
    table.add_column("Price", justify="right", style="magenta", width=16)
    table.add_column("Quantity", justify="right", style="magenta", width=16)

    ask_rows, bid_rows = view.render(depth)
    for price, quantity in ask_rows:
        table.add_row("Ask", price, quantity, style="red")
    table.add_section()
    for price, quantity in bid_rows:
        table.add_row("Bid", price, quantity, style="green")
    return table


def print_orderbook(
    symbol: str,
    target: datetime | int,
    depth: int = DEFAULT_RENDER_DEPTH,
    root: Path = DEFAULT_DATA_DIR,
    console: Console | None = None,
) -> bool:
    """Prints the book to the console. Returns False if nothing was found"""
    console = console or Console()
    target_millis = target if isinstance(target, int) else to_millis(target)
    result = find_orderbook(symbol, target_millis, root)
    if result is None:
        console.print(
            f"No snapshot found for {symbol} at or before {target_millis}. "
            + "Try an earlier time or check that the file has data."
        )
        return False
    _, view = result
    console.print(generate_table(Symbol(symbol), target_millis, view, depth))
    return True


if __name__ == "__main__":
    configure_logging()
    if len(sys.argv) < 3:
        print(__doc__)
        sys.exit(2)
    config = DepthLogConfig.from_env()
    depth = int(sys.argv[3]) if len(sys.argv) > 3 else config.render_depth
    found = print_orderbook(
        sys.argv[1], parse_target(sys.argv[2]), depth=depth, root=config.data_dir
    )
    sys.exit(0 if found else 1)
