import sys
import logging
from typing import Optional

from clusterweb import settings
from clusterweb.log.handler import LokiHandler

DEFAULT_FORMAT = '%(asctime)s - %(levelname)-8s - [%(name)s] [%(process)d] - %(message)s'


class MainFormatter(logging.Formatter):
    """A custom formatter to handle regular logs and raw subprocess logs."""

    def __init__(self) -> None:
        super().__init__(DEFAULT_FORMAT)

    def format(self, record):
        # Worker output relayed by the primary is already formatted by the worker.
        if record.name.startswith('proc.'):
            return record.getMessage()
        return super().format(record)


class RelayedOutputFilter(logging.Filter):
    """Drops worker output relayed by the primary under `proc.*` loggers."""

    def filter(self, record):
        return not record.name.startswith('proc.')


def create_loki_handler(role: Optional[str] = None) -> LokiHandler:
    """
    Builds the Loki handler for a process of the given role.

    Workers ship their own records, so the primary leaves out the copies it
    relays from their pipes.
    """
    loki_handler = LokiHandler(url=settings.LOKI_URL, org_id=settings.LOKI_ORG_ID, role=role)
    loki_handler.setLevel(logging.INFO)  # Avoid spamming Loki with DEBUG logs
    if role == "primary":
        loki_handler.addFilter(RelayedOutputFilter())
    return loki_handler


def setup_logging(console_level: int = logging.INFO, role: Optional[str] = None) -> None:
    """
    Configures the root logger for the application.
    This sets up handlers for the console and optionally Loki,
    clearing any previously configured handlers to prevent duplication.

    :param console_level: The logging level for the console output (e.g., logging.INFO).
    :param role: The process role, attached as a label to shipped log streams.
    """
    root_logger = logging.getLogger()
    # Set root level to lowest to capture all messages for handler filtering
    root_logger.setLevel(logging.DEBUG)

    # Clear any existing handlers to prevent re-adding them on re-runs
    if root_logger.hasHandlers():
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
            handler.close()

    # --- Console Handler ---
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(MainFormatter())
    root_logger.addHandler(console_handler)

    # --- Loki Handler (conditional) ---
    if settings.LOKI_ENABLED:
        try:
            root_logger.addHandler(create_loki_handler(role))
            root_logger.info(f"Grafana Loki logging handler initialized for {settings.LOKI_URL}.")
        except Exception as e:
            root_logger.error(f"Failed to initialize Grafana Loki logging handler: {e}")
