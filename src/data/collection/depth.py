import logging
from collections import Counter
from contextlib import nullcontext
from typing import Callable

from rich.live import Live
from rich.table import Table

from data.depthlog.writer import RotatingLogWriter
from exchange.binance import BinanceDepthFeed
from exchange.reconnect import ReconnectPolicy
from helpers.config import DepthLogConfig
from helpers.types.websockets.response import PartialDepthRM
from helpers.utils import configure_logging, now_millis

logger = logging.getLogger(__name__)


def generate_table(written: Counter, dropped: Counter) -> Table:
    table = Table(show_header=True, header_style="bold", title="Depth Collection")

    table.add_column("Symbol", style="cyan", width=12)
    table.add_column("Written", style="cyan", width=12)
    table.add_column("Dropped", style="magenta", width=12)

    for symbol in sorted(set(written) | set(dropped)):
        table.add_row(symbol, str(written[symbol]), str(dropped[symbol]))

    return table


def collect_depth_data(
    feed: BinanceDepthFeed,
    writer: RotatingLogWriter,
    clock: Callable[[], int] = now_millis,
    max_messages: int | None = None,
    display: bool = False,
):
    """Reads snapshots off the feed and writes them to the depth log

    Runs until the connection fails, in which case the error propagates so
    the caller can reconnect. max_messages stops it early, for testing.
    The exchange doesn't timestamp these messages so we stamp each one with
    the time we received it."""
    written: Counter = Counter()
    dropped: Counter = Counter()
    num_messages = 0

    with feed.connect() as ws:
        live = (
            Live(generate_table(written, dropped), refresh_per_second=1)
            if display
            else nullcontext()
        )
        with live:
            while max_messages is None or num_messages < max_messages:
                payload = feed.receive(ws)
                num_messages += 1
                event_time = clock()
                try:
                    msg = feed.parse(payload)
                    symbol = msg.symbol
                    snapshot = PartialDepthRM.model_validate(msg.data).to_snapshot(
                        event_time
                    )
                except ValueError as e:
                    # Also catches ValidationError
                    logger.warning("Could not parse depth message: %s", e)
                    continue

                if writer.append(symbol, snapshot):
                    written[symbol] += 1
                else:
                    dropped[symbol] += 1
                if display:
                    live.update(generate_table(written, dropped))


def retry_collect_depth_data(
    feed: BinanceDepthFeed,
    writer: RotatingLogWriter,
    policy: ReconnectPolicy | None = None,
    **kwargs,
):
    """Adds reconnects to collect_depth_data

    With the default policy this never gives up. Data that arrives while we
    are disconnected is lost, we don't backfill."""
    policy = policy or ReconnectPolicy()
    policy.run(lambda: collect_depth_data(feed=feed, writer=writer, **kwargs))


if __name__ == "__main__":
    configure_logging()
    config = DepthLogConfig.from_env()
    with RotatingLogWriter(root=config.data_dir) as writer:
        retry_collect_depth_data(
            BinanceDepthFeed(config.symbols),
            writer,
            policy=ReconnectPolicy(delay_seconds=config.reconnect_seconds),
            display=True,
        )
