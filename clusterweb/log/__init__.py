"""
Logging module for the application.
This module provides the logging setup shared by the primary and its workers.
"""

from .setup import setup_logging

__all__ = ["setup_logging"]
