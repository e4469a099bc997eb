import logging
from contextlib import contextmanager
from typing import Generator, List

from websockets.sync.client import ClientConnection
from websockets.sync.client import connect as external_websocket_connect

from helpers.constants import (
    BINANCE_STREAM_BASE_URL,
    COMBINED_STREAM_URL,
    DEPTH_STREAM_SUFFIX,
)
from helpers.types.common import URL
from helpers.types.depth import Symbol
from helpers.types.websockets.response import CombinedStreamWR

logger = logging.getLogger(__name__)


class BinanceDepthFeed:
    """Connects to the combined partial depth stream for a list of symbols

    Pings from the server are answered by the websockets library, so all we
    do here is read."""

    def __init__(
        self,
        symbols: List[str],
        base_url: URL = BINANCE_STREAM_BASE_URL,
    ):
        if len(symbols) == 0:
            raise ValueError("Need at least one symbol to subscribe to")
        self.symbols = [Symbol(s) for s in symbols]
        self._base_url = base_url

    @property
    def url(self) -> URL:
        streams = "/".join(symbol + DEPTH_STREAM_SUFFIX for symbol in self.symbols)
        return (
            self._base_url.add_protocol("wss")
            .add(COMBINED_STREAM_URL)
            .with_query(streams=streams)
        )

    @contextmanager
    def connect(self) -> Generator[ClientConnection, None, None]:
        """Opens the websocket. Errors dialing propagate to the caller"""
        with external_websocket_connect(self.url) as websocket:
            logger.info("Connected to combined stream: %s", self.url)
            yield websocket

    def receive(self, ws: ClientConnection) -> str | bytes:
        """Blocks until the next message. Raises if the connection drops"""
        return ws.recv()

    @staticmethod
    def parse(payload: str | bytes) -> CombinedStreamWR:
        return CombinedStreamWR.model_validate_json(payload)
