import os
import enum
import logging
import psutil
from dataclasses import dataclass
from typing import Mapping, Optional

from clusterweb import settings

log = logging.getLogger(__name__)


class Role(enum.Enum):
    """The part a process plays in the pool. Resolved once at startup."""
    PRIMARY = "primary"
    WORKER = "worker"


def resolve_role(environ: Optional[Mapping[str, str]] = None) -> Role:
    """
    Determines the role of the current process from its environment.

    Only the supervisor sets the role variable, when it spawns a worker. A
    process started without it is the primary.

    :param environ: The environment to inspect. Defaults to os.environ.
    :return: The resolved Role.
    :raises ValueError: If the variable holds an unknown role name.
    """
    environ = os.environ if environ is None else environ
    raw = environ.get(settings.ROLE_ENV_VAR, "").strip().lower()
    if not raw:
        return Role.PRIMARY
    try:
        return Role(raw)
    except ValueError:
        raise ValueError(f"Unknown process role '{raw}' in {settings.ROLE_ENV_VAR}.") from None


def resolve_listen_fd(environ: Optional[Mapping[str, str]] = None) -> int:
    """
    Reads the inherited listening socket's file descriptor from the environment.

    :raises ValueError: If the variable is missing or not a non-negative integer.
    """
    environ = os.environ if environ is None else environ
    raw = environ.get(settings.LISTEN_FD_ENV_VAR)
    if raw is None:
        raise ValueError(f"{settings.LISTEN_FD_ENV_VAR} is not set; worker has no listening socket.")
    try:
        fd = int(raw)
    except ValueError:
        raise ValueError(f"{settings.LISTEN_FD_ENV_VAR}='{raw}' is not a file descriptor.") from None
    if fd < 0:
        raise ValueError(f"{settings.LISTEN_FD_ENV_VAR}='{raw}' is not a file descriptor.")
    return fd


def detect_cpu_count() -> Optional[int]:
    """Returns the number of logical cores, or None if it cannot be determined."""
    count = psutil.cpu_count(logical=True)
    if not count or count < 1:
        return None
    return count


def pool_size_for(cpu_count: Optional[int]) -> int:
    """One worker per core, never less than one."""
    if cpu_count is None:
        log.warning("Could not detect the CPU core count. Defaulting to a pool of 1 worker.")
        return 1
    return cpu_count


@dataclass(frozen=True)
class PoolConfiguration:
    """Immutable configuration for one run of the pool, computed once at startup."""
    pool_size: int
    host: str = settings.HOST
    port: int = settings.PORT
    backlog: int = settings.LISTEN_BACKLOG
    poll_interval: float = settings.SUPERVISOR_POLL_INTERVAL
    shutdown_timeout: float = settings.WORKER_SHUTDOWN_TIMEOUT
    parent_check_interval: float = settings.PARENT_CHECK_INTERVAL
    # Core count as detected; None when detection failed.
    cpu_count: Optional[int] = None

    def __post_init__(self) -> None:
        if self.pool_size < 1:
            raise ValueError(f"pool_size must be at least 1, got {self.pool_size}")

    @classmethod
    def from_settings(cls) -> "PoolConfiguration":
        """Snapshots the settings module and the host's core count."""
        cpu_count = detect_cpu_count()
        return cls(pool_size=pool_size_for(cpu_count), cpu_count=cpu_count)
