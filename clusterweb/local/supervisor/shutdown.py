import psutil
import logging
from typing import Iterable, List

log = logging.getLogger(__name__)


def _terminate_processes(processes: Iterable[psutil.Process]) -> None:
    """Sends SIGTERM to all processes."""
    for proc in processes:
        try:
            log.debug(f"Sending SIGTERM to worker (PID {proc.pid})")
            proc.terminate()
        except psutil.NoSuchProcess:
            log.debug(f"Process {proc.pid} no longer exists, skipping termination.")
            continue


def _forceful_kill(processes: List[psutil.Process]) -> None:
    """Forcefully kills processes that didn't terminate in time."""
    if not processes:
        return

    log.warning(f"{len(processes)} workers did not terminate in time. Forcing shutdown...")
    for proc in processes:
        try:
            log.warning(f"Killing stubborn worker (PID {proc.pid}).")
            proc.kill()
        except psutil.NoSuchProcess:
            continue


def terminate_workers(processes: Iterable[psutil.Process], timeout: float) -> None:
    """
    Stops the given worker processes: SIGTERM first, SIGKILL for the ones
    still alive after `timeout` seconds.

    :param processes: psutil.Process handles of the workers.
    :param timeout: Seconds to wait before force-killing.
    """
    procs_list = list(processes)
    if not procs_list:
        return

    _terminate_processes(procs_list)
    try:
        _, alive = psutil.wait_procs(procs_list, timeout=timeout)
    except psutil.NoSuchProcess:
        alive = []

    _forceful_kill(list(alive))
    if alive:
        psutil.wait_procs(list(alive), timeout=timeout)
