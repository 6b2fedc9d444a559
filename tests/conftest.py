"""
pytest configuration and fixtures.
"""

import itertools
from typing import Iterator, List, Optional

import psutil
import pytest

from clusterweb.local.config import PoolConfiguration
from clusterweb.local.supervisor import PoolSupervisor, process_utils


class FakeProcess:
    """Stands in for a psutil.Popen handle of a worker."""

    def __init__(self, pid: int):
        self.pid = pid
        self.returncode: Optional[int] = None
        self.running = True
        self.terminated = False

    def is_running(self) -> bool:
        return self.running

    def status(self) -> str:
        return psutil.STATUS_RUNNING if self.running else psutil.STATUS_ZOMBIE

    def exit(self, returncode: int) -> "FakeProcess":
        self.running = False
        self.returncode = returncode
        return self


class FakeSocket:
    """A listening socket stand-in; the supervisor only needs its descriptor."""

    def fileno(self) -> int:
        return 99


class FakeLauncher:
    """Replaces process_utils.launch_worker and records every spawn."""

    def __init__(self):
        self._pids: Iterator[int] = itertools.count(1000)
        self.spawned: List[FakeProcess] = []
        self.fds: List[int] = []
        self.failures_left = 0

    def __call__(self, listen_fd: int) -> FakeProcess:
        self.fds.append(listen_fd)
        if self.failures_left > 0:
            self.failures_left -= 1
            raise OSError("fork failed")
        proc = FakeProcess(next(self._pids))
        self.spawned.append(proc)
        return proc


@pytest.fixture
def pool_config() -> PoolConfiguration:
    """A small pool with fast timings for tests."""
    return PoolConfiguration(
        pool_size=3,
        host="127.0.0.1",
        port=0,
        poll_interval=0.05,
        shutdown_timeout=1.0,
        parent_check_interval=0.05,
    )


@pytest.fixture
def launcher(monkeypatch) -> FakeLauncher:
    fake = FakeLauncher()
    monkeypatch.setattr(process_utils, "launch_worker", fake)
    return fake


@pytest.fixture
def supervisor(pool_config: PoolConfiguration, launcher: FakeLauncher) -> PoolSupervisor:
    return PoolSupervisor(pool_config, FakeSocket())


@pytest.fixture
def fake_socket() -> FakeSocket:
    return FakeSocket()


@pytest.fixture
def make_process():
    """Factory for process handles that the supervisor never spawned."""
    return FakeProcess
