"""
Unit tests for worker lifecycle bookkeeping.
"""

import pytest

from clusterweb.local.supervisor.lifecycle import (ExitReason, InvalidTransitionError, WorkerProcess,
                                                   WorkerState, classify_exit, describe_exit,
                                                   should_respawn)


class TestClassifyExit:
    """Tests for classify_exit."""

    @pytest.mark.parametrize("returncode, reason", [
        (0, ExitReason.CLEAN),
        (1, ExitReason.CRASHED),
        (255, ExitReason.CRASHED),
        (-9, ExitReason.SIGNAL_KILLED),
        (-15, ExitReason.SIGNAL_KILLED),
        (None, ExitReason.CRASHED),
    ])
    def test_classification(self, returncode, reason):
        assert classify_exit(returncode) is reason

    def test_describe(self):
        assert describe_exit(0) == "code 0"
        assert describe_exit(3) == "code 3"
        assert describe_exit(-9) == "signal SIGKILL"
        assert describe_exit(None) == "unknown status"


class TestRespawnPolicy:
    """Tests for the default respawn policy."""

    @pytest.mark.parametrize("reason", list(ExitReason))
    def test_every_reason_respawns(self, reason):
        assert should_respawn(reason) is True


class TestWorkerProcess:
    """Tests for WorkerProcess state transitions."""

    def test_starts_in_starting(self, make_process):
        worker = WorkerProcess(process=make_process(10))

        assert worker.pid == 10
        assert worker.state is WorkerState.STARTING
        assert worker.exit_reason is None

    def test_full_lifecycle(self, make_process):
        worker = WorkerProcess(process=make_process(10))
        worker.mark_running()
        reason = worker.mark_exited(-9)

        assert reason is ExitReason.SIGNAL_KILLED
        assert worker.state is WorkerState.EXITED
        assert worker.exit_code == -9
        assert worker.is_exited

    def test_can_exit_before_running(self, make_process):
        worker = WorkerProcess(process=make_process(10))

        assert worker.mark_exited(1) is ExitReason.CRASHED

    def test_exited_worker_never_runs_again(self, make_process):
        worker = WorkerProcess(process=make_process(10))
        worker.mark_exited(0)

        with pytest.raises(InvalidTransitionError):
            worker.mark_running()
        with pytest.raises(InvalidTransitionError):
            worker.mark_exited(0)
