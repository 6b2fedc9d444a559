import os
import socket
import logging
from typing import TYPE_CHECKING
from clusterweb.local.config import PoolConfiguration

if TYPE_CHECKING:
    from .supervisor import PoolSupervisor

log = logging.getLogger(__name__)


def bind_listening_socket(config: PoolConfiguration) -> socket.socket:
    """
    Creates the listening socket that every worker will accept on.

    The primary binds once; workers inherit the descriptor, so the kernel
    distributes incoming connections between them.

    :param config: The pool configuration holding host, port and backlog.
    :return: A bound, listening TCP socket.
    :raises OSError: If the address cannot be bound (e.g. port already in use).
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((config.host, config.port))
        sock.listen(config.backlog)
    except OSError:
        sock.close()
        raise
    log.debug(f"Listening socket bound to {config.host}:{config.port} (fd {sock.fileno()}).")
    return sock


def announce_startup(config: PoolConfiguration) -> None:
    """Logs the startup record of the primary process."""
    cpus = config.cpu_count if config.cpu_count is not None else "unknown"
    log.info(f"Number of CPUs is {cpus}")
    log.info(f"Pool size is {config.pool_size}")
    log.info(f"Primary {os.getpid()} is running")


def start_pool(manager: "PoolSupervisor") -> None:
    """
    Launches the initial pool of workers.

    :param manager: The PoolSupervisor instance.
    """
    for _ in range(manager.config.pool_size):
        manager.spawn_worker()
    log.info(f"Launched {len(manager.workers)} worker processes.")
