import threading
from datetime import date
from pathlib import Path

from mock import MagicMock

from data.depthlog.paths import log_path, utc_date_of_millis
from data.depthlog.reader import iter_snapshots
from data.depthlog.writer import RotatingLogWriter
from helpers.types.depth import Symbol
from tests.utils import FakeClock, make_snapshot


def test_log_path(data_dir: Path):
    assert log_path(data_dir, Symbol("ETHUSDT"), date(2025, 8, 17)) == (
        data_dir / "ethusdt" / "ethusdt_2025-08-17.bin"
    )


def test_utc_date_of_millis():
    # 2025-08-17 23:59:59.999 UTC
    assert utc_date_of_millis(1755475199999) == date(2025, 8, 17)
    assert utc_date_of_millis(1755475200000) == date(2025, 8, 18)


def test_same_day_appends_go_to_same_file(
    writer: RotatingLogWriter, data_dir: Path, clock: FakeClock
):
    first = make_snapshot(100)
    second = make_snapshot(200)
    assert writer.append("ETHUSDT", first)
    clock.advance(seconds=30)
    assert writer.append("ethusdt", second)

    path = data_dir / "ethusdt" / "ethusdt_2025-08-17.bin"
    assert writer.current_path("ethusdt") == path
    assert list(iter_snapshots(path)) == [first, second]
    assert [p.name for p in (data_dir / "ethusdt").iterdir()] == [path.name]


def test_append_is_flushed_before_returning(writer: RotatingLogWriter):
    snapshot = make_snapshot(100)
    writer.append("ethbtc", snapshot)
    path = writer.current_path("ethbtc")
    assert path is not None
    # Read through a separate handle while the writer still has it open
    assert list(iter_snapshots(path)) == [snapshot]


def test_rotation_across_midnight(
    writer: RotatingLogWriter, data_dir: Path, clock: FakeClock
):
    writer.append("ethusdt", make_snapshot(100))
    writer.append("ethusdt", make_snapshot(200))
    old_path = data_dir / "ethusdt" / "ethusdt_2025-08-17.bin"
    old_bytes = old_path.read_bytes()

    # Cross midnight UTC
    clock.advance(minutes=2)
    new_snapshot = make_snapshot(300)
    writer.append("ethusdt", new_snapshot)

    new_path = data_dir / "ethusdt" / "ethusdt_2025-08-18.bin"
    assert writer.current_path("ethusdt") == new_path
    assert list(iter_snapshots(new_path)) == [new_snapshot]
    # Old file is left alone
    assert old_path.read_bytes() == old_bytes


def test_rotation_is_lazy_per_symbol(
    writer: RotatingLogWriter, data_dir: Path, clock: FakeClock
):
    writer.append("ethusdt", make_snapshot(100))
    writer.append("ethbtc", make_snapshot(100))

    # A day later only ethusdt writes. ethbtc keeps its old file open
    clock.advance(days=1)
    writer.append("ethusdt", make_snapshot(200))
    assert writer.current_path("ethusdt") == (
        data_dir / "ethusdt" / "ethusdt_2025-08-18.bin"
    )
    assert writer.current_path("ethbtc") == (
        data_dir / "ethbtc" / "ethbtc_2025-08-17.bin"
    )

    # ethbtc rotates on its next write, skipping the idle day entirely
    clock.advance(days=1)
    writer.append("ethbtc", make_snapshot(300))
    assert writer.current_path("ethbtc") == (
        data_dir / "ethbtc" / "ethbtc_2025-08-19.bin"
    )
    assert not (data_dir / "ethbtc" / "ethbtc_2025-08-18.bin").exists()


def test_reopening_appends_to_existing_file(data_dir: Path, clock: FakeClock):
    first = make_snapshot(100)
    second = make_snapshot(200)
    with RotatingLogWriter(root=data_dir, clock=clock) as writer:
        writer.append("ethusdt", first)
    with RotatingLogWriter(root=data_dir, clock=clock) as writer:
        writer.append("ethusdt", second)

    path = data_dir / "ethusdt" / "ethusdt_2025-08-17.bin"
    assert list(iter_snapshots(path)) == [first, second]


def test_close(writer: RotatingLogWriter):
    writer.append("ethusdt", make_snapshot(100))
    assert writer.current_path("ethusdt") is not None
    writer.close()
    assert writer.current_path("ethusdt") is None
    # Closing twice is fine
    writer.close()
    # Writing after close opens the file again
    assert writer.append("ethusdt", make_snapshot(200))


def test_directory_error_drops_snapshot(tmp_path: Path, clock: FakeClock, caplog):
    # The data dir is a file, so we can't make the symbol directory
    root = tmp_path / "not_a_dir"
    root.write_bytes(b"")
    with RotatingLogWriter(root=root, clock=clock) as writer:
        assert not writer.append("ethusdt", make_snapshot(100, last_update_id=42))
        assert writer.current_path("ethusdt") is None
    assert "Error writing snapshot 42 for ethusdt" in caplog.text


def test_write_error_drops_snapshot(writer: RotatingLogWriter, caplog):
    writer.append("ethusdt", make_snapshot(100))
    symbol_log = writer._logs[Symbol("ethusdt")]
    real_file = symbol_log.file
    mock_file = MagicMock()
    mock_file.write.side_effect = OSError("disk full")
    symbol_log.file = mock_file

    assert not writer.append("ethusdt", make_snapshot(200, last_update_id=7))
    assert "Error writing snapshot 7 for ethusdt" in caplog.text

    # Collection carries on with the next snapshot
    symbol_log.file = real_file
    assert writer.append("ethusdt", make_snapshot(300))


def test_encode_error_drops_snapshot(writer: RotatingLogWriter, caplog):
    assert not writer.append("ethusdt", make_snapshot(1 << 63, last_update_id=9))
    assert "Could not encode snapshot 9 for ethusdt" in caplog.text
    assert writer.current_path("ethusdt") is None


def test_concurrent_appends(writer: RotatingLogWriter, data_dir: Path):
    symbols = ["ethusdt", "ethusdc", "ethbtc"]
    num_threads = 6
    appends_per_thread = 50

    def append_many(thread_num: int):
        symbol = symbols[thread_num % len(symbols)]
        for i in range(appends_per_thread):
            writer.append(symbol, make_snapshot(thread_num * 1000 + i))

    threads = [
        threading.Thread(target=append_many, args=(i,)) for i in range(num_threads)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    for symbol in symbols:
        path = data_dir / symbol / f"{symbol}_2025-08-17.bin"
        snapshots = list(iter_snapshots(path))
        # Two threads per symbol, and no frame got interleaved with another
        assert len(snapshots) == 2 * appends_per_thread
