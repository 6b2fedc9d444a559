import os
import socket
import asyncio
import logging
import uvicorn

from clusterweb.local.config import PoolConfiguration
from clusterweb.web.setup import app

log = logging.getLogger("asgi_server")


def open_inherited_socket(listen_fd: int) -> socket.socket:
    """
    Wraps the listening socket inherited from the primary.

    :param listen_fd: The file descriptor passed down by the supervisor.
    :return: The socket object; its family is detected from the descriptor.
    :raises OSError: If the descriptor is invalid, not a socket, or not listening.
    """
    sock = socket.socket(fileno=listen_fd)
    if sock.type != socket.SOCK_STREAM:
        sock.detach()
        raise OSError(f"fd {listen_fd} is not a stream socket")
    if hasattr(socket, "SO_ACCEPTCONN") and not sock.getsockopt(socket.SOL_SOCKET, socket.SO_ACCEPTCONN):
        sock.detach()
        raise OSError(f"fd {listen_fd} is not a listening socket")
    return sock


def build_server_config(config: PoolConfiguration) -> uvicorn.Config:
    """Builds the uvicorn configuration for a worker."""
    return uvicorn.Config(
        app,
        backlog=config.backlog,
        # Keep our own logging setup; uvicorn's loggers propagate into it.
        log_config=None,
        access_log=True,
        timeout_graceful_shutdown=int(config.shutdown_timeout),
    )


async def watch_parent(server: uvicorn.Server, parent_pid: int, interval: float) -> None:
    """Asks the server to exit once the primary that spawned this worker is gone."""
    while not server.should_exit:
        if os.getppid() != parent_pid:
            log.warning(f"Primary {parent_pid} is gone. Worker {os.getpid()} is shutting down.")
            server.should_exit = True
            return
        await asyncio.sleep(interval)


async def serve_until_orphaned(server: uvicorn.Server, sock: socket.socket, parent_pid: int, interval: float) -> None:
    """Serves on `sock` until the server is told to exit or the primary disappears."""
    watcher = asyncio.create_task(watch_parent(server, parent_pid, interval))
    try:
        await server.serve(sockets=[sock])
    finally:
        watcher.cancel()


def run_worker(config: PoolConfiguration, listen_fd: int) -> int:
    """
    Runs one worker: attach to the shared socket and serve until terminated.

    :param config: The pool configuration.
    :param listen_fd: Descriptor of the inherited listening socket.
    :return: The process exit status.
    """
    pid = os.getpid()
    log.info(f"Worker {pid} started")

    try:
        sock = open_inherited_socket(listen_fd)
    except OSError as e:
        log.critical(f"Worker {pid} cannot attach to the listening socket (fd {listen_fd}): {e}")
        return 1

    log.info(f"App listening on port {sock.getsockname()[1]}")
    server = uvicorn.Server(build_server_config(config))
    asyncio.run(serve_until_orphaned(server, sock, os.getppid(), config.parent_check_interval))
    return 0
