import logging
from contextlib import closing
from pathlib import Path
from typing import Generator

from data.depthlog.codec import FramingError, PayloadDecodeError, read_frame
from data.depthlog.paths import log_path, utc_date_of_millis
from helpers.constants import DEFAULT_DATA_DIR
from helpers.types.depth import DepthSnapshot, Symbol

logger = logging.getLogger(__name__)


def iter_snapshots(path: Path) -> Generator[DepthSnapshot, None, None]:
    """Yields every snapshot in a log file in the order it was written

    Frames whose payload can't be parsed are skipped. If the framing itself
    breaks (bad length prefix, or a torn frame at the tail while the writer
    is still appending) we stop, because we no longer know where the next
    frame starts."""
    with open(path, "rb") as f:
        frame_num = 0
        while True:
            try:
                snapshot = read_frame(f)
            except EOFError:
                return
            except PayloadDecodeError as e:
                logger.warning("Skipping frame %s in %s: %s", frame_num, path, e)
                frame_num += 1
                continue
            except FramingError as e:
                logger.error(
                    "Lost framing at frame %s in %s, stopping read: %s",
                    frame_num,
                    path,
                    e,
                )
                return
            frame_num += 1
            yield snapshot


class SnapshotLogReader:
    """Answers "what did the book look like at time T" from the depth log

    There is no index. We scan the day's file from the start, which is fine
    because the files are written in time order."""

    def __init__(self, root: Path = DEFAULT_DATA_DIR):
        self.root = Path(root)

    def path_for(self, symbol: str, target_millis: int) -> Path:
        return log_path(self.root, Symbol(symbol), utc_date_of_millis(target_millis))

    def find(self, symbol: str, target_millis: int) -> DepthSnapshot | None:
        """Returns the last snapshot with event_time <= target_millis

        Only the file for the UTC day of target_millis is searched. Returns
        None if that file doesn't exist or holds no snapshot early enough."""
        try:
            path = self.path_for(symbol, target_millis)
        except OverflowError as e:
            # Targets past year 9999 (or before year 1) have no calendar day
            logger.warning("No data file for %s at %s: %s", symbol, target_millis, e)
            return None
        logger.info(
            "Attempting to find order book for %s at %s from file %s",
            symbol,
            target_millis,
            path,
        )
        if not path.exists():
            logger.warning("No data file for %s at %s", symbol, path)
            return None

        closest: DepthSnapshot | None = None
        last_event_time: int | None = None
        with closing(iter_snapshots(path)) as snapshots:
            for snapshot in snapshots:
                # We rely on the file being in time order to stop early, but
                # nothing guarantees it. Flag it so a wrong answer is visible
                if (
                    last_event_time is not None
                    and snapshot.event_time < last_event_time
                ):
                    logger.warning(
                        "Event time went backwards in %s: %s after %s",
                        path,
                        snapshot.event_time,
                        last_event_time,
                    )
                last_event_time = snapshot.event_time

                if snapshot.event_time > target_millis:
                    break
                closest = snapshot

        if closest is None:
            logger.info(
                "No snapshot for %s at or before %s in %s", symbol, target_millis, path
            )
        return closest
