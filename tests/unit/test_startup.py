"""
Unit tests for binding the shared socket and stopping workers.
"""

import os
import socket
import subprocess
import sys

import psutil
import pytest

from clusterweb.local.config import PoolConfiguration
from clusterweb.local.supervisor import startup
from clusterweb.local.supervisor.shutdown import terminate_workers


class TestBindListeningSocket:
    """Tests for bind_listening_socket."""

    def test_binds_and_listens(self):
        config = PoolConfiguration(pool_size=1, host="127.0.0.1", port=0)

        with startup.bind_listening_socket(config) as sock:
            host, port = sock.getsockname()
            assert host == "127.0.0.1"
            assert port > 0
            assert sock.getsockopt(socket.SOL_SOCKET, socket.SO_ACCEPTCONN)

            with socket.create_connection((host, port), timeout=2):
                pass

    def test_port_in_use_is_an_error(self):
        first = startup.bind_listening_socket(PoolConfiguration(pool_size=1, host="127.0.0.1", port=0))
        with first:
            taken = first.getsockname()[1]
            with pytest.raises(OSError):
                startup.bind_listening_socket(PoolConfiguration(pool_size=1, host="127.0.0.1", port=taken))


class TestAnnounceStartup:
    """Tests for the startup record."""

    def test_logs_core_count_and_pid(self, caplog):
        caplog.set_level("INFO")
        startup.announce_startup(PoolConfiguration(pool_size=6, cpu_count=6))

        assert "Number of CPUs is 6" in caplog.text
        assert "Pool size is 6" in caplog.text
        assert f"Primary {os.getpid()} is running" in caplog.text

    def test_failed_detection_is_not_reported_as_one_cpu(self, caplog):
        caplog.set_level("INFO")
        startup.announce_startup(PoolConfiguration(pool_size=1, cpu_count=None))

        assert "Number of CPUs is unknown" in caplog.text
        assert "Number of CPUs is 1" not in caplog.text
        assert "Pool size is 1" in caplog.text


def _spawn(code: str) -> psutil.Popen:
    return psutil.Popen([sys.executable, "-c", code], stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)


class TestTerminateWorkers:
    """Tests for terminate_workers."""

    def test_terminates_processes(self):
        procs = [_spawn("import time; time.sleep(60)") for _ in range(2)]

        terminate_workers(procs, timeout=5)

        assert all(not p.is_running() or p.status() == psutil.STATUS_ZOMBIE for p in procs)

    def test_kills_processes_ignoring_sigterm(self):
        stubborn = _spawn("import signal, time; signal.signal(signal.SIGTERM, signal.SIG_IGN); time.sleep(60)")

        terminate_workers([stubborn], timeout=0.5)

        assert not stubborn.is_running() or stubborn.status() == psutil.STATUS_ZOMBIE

    def test_nothing_to_do(self):
        terminate_workers([], timeout=1)
