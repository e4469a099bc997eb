import random
import typing
from datetime import datetime, timedelta
from pathlib import Path

from data.depthlog.codec import encode
from helpers.types.depth import DepthSnapshot, Level


class FakeClock:
    """Stands in for the wall clock so tests can cross midnight"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


def make_snapshot(
    event_time: int,
    last_update_id: int | None = None,
    bids: typing.List[typing.Tuple[float, float]] | None = None,
    asks: typing.List[typing.Tuple[float, float]] | None = None,
) -> DepthSnapshot:
    return DepthSnapshot(
        event_time=event_time,
        last_update_id=event_time if last_update_id is None else last_update_id,
        bids=[Level(*level) for level in ([(10.0, 1.0)] if bids is None else bids)],
        asks=[Level(*level) for level in ([(11.0, 1.0)] if asks is None else asks)],
    )


def random_snapshot(rng: random.Random, max_levels: int = 20) -> DepthSnapshot:
    """Snapshot with random finite values and random length sides"""

    def random_levels() -> typing.List[Level]:
        return [
            Level(rng.uniform(-1e9, 1e9), rng.uniform(0, 1e6))
            for _ in range(rng.randint(0, max_levels))
        ]

    return DepthSnapshot(
        event_time=rng.randint(-(1 << 63), (1 << 63) - 1),
        last_update_id=rng.randint(0, (1 << 63) - 1),
        bids=random_levels(),
        asks=random_levels(),
    )


def write_frames(path: Path, frames: typing.Iterable[DepthSnapshot | bytes]):
    """Writes a log file by hand. Raw bytes are written as is so tests can
    plant corrupt frames"""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        for frame in frames:
            f.write(frame if isinstance(frame, bytes) else encode(frame))
