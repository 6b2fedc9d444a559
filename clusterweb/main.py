import sys
import logging
from typing import List, Optional

from clusterweb import settings
from clusterweb.log.setup import setup_logging
from clusterweb.local.config import PoolConfiguration, Role, resolve_listen_fd, resolve_role

log = logging.getLogger("console")


def run_primary(config: PoolConfiguration) -> int:
    """Binds the shared socket and supervises the worker pool until stopped."""
    from clusterweb.local.supervisor import PoolSupervisor
    from clusterweb.local.supervisor.startup import announce_startup, bind_listening_socket

    announce_startup(config)
    try:
        listen_socket = bind_listening_socket(config)
    except OSError as e:
        log.critical(f"Cannot listen on {config.host}:{config.port}: {e}", exc_info=True)
        return 1

    with listen_socket:
        supervisor = PoolSupervisor(config, listen_socket)
        supervisor.install_signal_handlers()
        supervisor.run()
    return 0


def main(argv: Optional[List[str]] = None, role: Optional[Role] = None) -> int:
    """
    The entry point for both the primary and its workers.

    The role is resolved once here, from the environment the supervisor sets
    for its workers, and never re-checked.

    :param argv: Command-line arguments (without the program name).
    :param role: An explicit role; resolved from the environment when omitted.
    :return: The process exit status.
    """
    args = sys.argv[1:] if argv is None else list(argv)
    console_level = logging.getLevelName(settings.LOG_LEVEL)
    if not isinstance(console_level, int):
        console_level = logging.INFO
    if "--verbose" in args:
        console_level = logging.DEBUG
        args.remove("--verbose")
    if args:
        print(f"Unknown arguments: {' '.join(args)}", file=sys.stderr)
        print("Usage: clusterweb [--verbose]", file=sys.stderr)
        return 2

    try:
        role = role or resolve_role()
    except ValueError as e:
        setup_logging(console_level)
        log.critical(str(e))
        return 1

    setup_logging(console_level, role=role.value)
    config = PoolConfiguration.from_settings()

    if role is Role.PRIMARY:
        return run_primary(config)

    from clusterweb.web.server import run_worker
    try:
        listen_fd = resolve_listen_fd()
    except ValueError as e:
        log.critical(str(e))
        return 1
    return run_worker(config, listen_fd)


if __name__ == "__main__":
    sys.exit(main())
