"""
Web application package for ClusterWeb.

This package contains the worker-side HTTP application, its middleware and
the code that serves it on the listening socket inherited from the primary.
"""
