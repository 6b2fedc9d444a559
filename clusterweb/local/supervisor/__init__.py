"""
The Supervisor package.
Manages the lifecycle of the worker processes.

This package contains the central PoolSupervisor class and its helper modules,
which together handle binding the shared socket, launching, monitoring,
replacing and finally stopping the pool of workers.
"""
from .supervisor import PoolSupervisor
from .lifecycle import ExitReason, WorkerProcess, WorkerState, classify_exit, should_respawn

__all__ = ['PoolSupervisor', 'ExitReason', 'WorkerProcess', 'WorkerState', 'classify_exit', 'should_respawn']
