import pathlib

from helpers.types.common import URL

BINANCE_STREAM_BASE_URL = URL("stream.binance.com:9443")
COMBINED_STREAM_URL = URL("/stream")
# Top 20 levels every 100ms. These are full snapshots, not diffs
DEPTH_STREAM_SUFFIX = "@depth20@100ms"

DEFAULT_SYMBOLS = ["ethusdt", "ethusdc", "ethbtc"]

# ENV VARS
DATA_DIR_ENV_VAR = "DEPTH_LOG_DATA_DIR"
SYMBOLS_ENV_VAR = "DEPTH_LOG_SYMBOLS"
RECONNECT_SECONDS_ENV_VAR = "DEPTH_LOG_RECONNECT_SECONDS"
RENDER_DEPTH_ENV_VAR = "DEPTH_LOG_RENDER_DEPTH"
ENV_VARS = [
    DATA_DIR_ENV_VAR,
    SYMBOLS_ENV_VAR,
    RECONNECT_SECONDS_ENV_VAR,
    RENDER_DEPTH_ENV_VAR,
]

# DATA
# Relative to the working directory, like the files written by the collector
DEFAULT_DATA_DIR = pathlib.Path("data")
LOG_FILE_SUFFIX = ".bin"
LOG_DATE_FORMAT = "%Y-%m-%d"

DEFAULT_RECONNECT_SECONDS = 5.0
DEFAULT_RENDER_DEPTH = 20
