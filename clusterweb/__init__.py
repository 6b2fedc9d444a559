"""
ClusterWeb: a multi-process HTTP server.

A primary process binds one listening socket, starts one worker process per
CPU core on it and replaces every worker that exits.
"""

__version__ = "0.1.0"
