"""
Middleware package for the web application.

This package contains middleware classes applied to every worker's application.
"""

from .served_by import ServedByMiddleware

__all__ = ["ServedByMiddleware"]
