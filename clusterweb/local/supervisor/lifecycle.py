import enum
import time
import signal
from dataclasses import dataclass, field
from typing import Any, Optional


class WorkerState(enum.Enum):
    STARTING = "starting"
    RUNNING = "running"
    EXITED = "exited"


class ExitReason(enum.Enum):
    CLEAN = "clean"
    CRASHED = "crashed"
    SIGNAL_KILLED = "signal_killed"


class InvalidTransitionError(RuntimeError):
    """Raised when a worker is moved to a state its lifecycle does not allow."""


def classify_exit(returncode: Optional[int]) -> ExitReason:
    """
    Maps a process return code to an ExitReason.

    psutil and subprocess both report death by signal as the negated signal
    number. An unknown return code is treated as a crash.
    """
    if returncode is None:
        return ExitReason.CRASHED
    if returncode == 0:
        return ExitReason.CLEAN
    if returncode < 0:
        return ExitReason.SIGNAL_KILLED
    return ExitReason.CRASHED


def describe_exit(returncode: Optional[int]) -> str:
    """Returns a short human-readable form of a return code for log lines."""
    if returncode is None:
        return "unknown status"
    if returncode < 0:
        try:
            return f"signal {signal.Signals(-returncode).name}"
        except ValueError:
            return f"signal {-returncode}"
    return f"code {returncode}"


def should_respawn(reason: ExitReason) -> bool:
    """
    Decides whether an exited worker gets a replacement.

    Every exit is replaced, clean ones included, with no backoff and no
    restart limit.
    """
    if reason is ExitReason.CLEAN:
        return True
    if reason is ExitReason.CRASHED:
        return True
    if reason is ExitReason.SIGNAL_KILLED:
        return True
    raise ValueError(f"Unhandled exit reason: {reason!r}")


@dataclass
class WorkerProcess:
    """Bookkeeping for one spawned worker. Owned by the PoolSupervisor."""
    process: Any
    state: WorkerState = WorkerState.STARTING
    exit_code: Optional[int] = None
    exit_reason: Optional[ExitReason] = None
    started_at: float = field(default_factory=time.monotonic)

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def is_exited(self) -> bool:
        return self.state is WorkerState.EXITED

    def mark_running(self) -> None:
        if self.state is WorkerState.EXITED:
            raise InvalidTransitionError(f"Worker {self.pid} has exited and cannot run again.")
        self.state = WorkerState.RUNNING

    def mark_exited(self, returncode: Optional[int]) -> ExitReason:
        if self.state is WorkerState.EXITED:
            raise InvalidTransitionError(f"Worker {self.pid} has already exited.")
        self.state = WorkerState.EXITED
        self.exit_code = returncode
        self.exit_reason = classify_exit(returncode)
        return self.exit_reason
