import os
from datetime import datetime
from pathlib import Path

import pytest
import pytz

from data.depthlog.reader import SnapshotLogReader
from data.depthlog.writer import RotatingLogWriter
from helpers.constants import ENV_VARS
from tests.utils import FakeClock

"""This file contains configuration information for testing.
Please place any test fixtures in this file"""


@pytest.fixture(autouse=True)
def env_vars():
    """Makes sure config env vars from the shell don't leak into tests"""
    old_environ = dict(os.environ)
    for env_var in ENV_VARS:
        os.environ.pop(env_var, None)
    try:
        yield
    finally:
        os.environ.clear()
        os.environ.update(old_environ)


@pytest.fixture()
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture()
def clock() -> FakeClock:
    # Just before midnight UTC so tests can roll over to the next day
    return FakeClock(datetime(2025, 8, 17, 23, 59, 0, tzinfo=pytz.UTC))


@pytest.fixture()
def writer(data_dir: Path, clock: FakeClock):
    with RotatingLogWriter(root=data_dir, clock=clock) as writer:
        yield writer


@pytest.fixture()
def reader(data_dir: Path) -> SnapshotLogReader:
    return SnapshotLogReader(root=data_dir)
