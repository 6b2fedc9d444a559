"""
Local package for the clusterweb application.

This package holds process-local concerns of the primary: role resolution,
the pool configuration and the worker supervisor.
"""

from .config import PoolConfiguration, Role, resolve_role

__all__ = ["PoolConfiguration", "Role", "resolve_role"]
