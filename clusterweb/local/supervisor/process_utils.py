import os
import sys
import psutil
import logging
import threading
import subprocess
from typing import Dict, List
from clusterweb import settings
from clusterweb.local.config import Role

log = logging.getLogger(__name__)


#* --- Process Status ---
def is_alive(proc: psutil.Process) -> bool:
    """Checks whether a process is still running and not a zombie."""
    try:
        return proc.is_running() and proc.status() != psutil.STATUS_ZOMBIE
    except psutil.NoSuchProcess:
        return False

#* --- Process Creation ---
def get_worker_args() -> List[str]:
    """Returns the command line used to start a worker process."""
    return [settings.PYTHON_EXECUTABLE, "-m", "clusterweb"]

def get_worker_env(listen_fd: int) -> Dict[str, str]:
    """Returns the environment of a worker: the parent's plus its role and socket."""
    env = dict(os.environ)
    env[settings.ROLE_ENV_VAR] = Role.WORKER.value
    env[settings.LISTEN_FD_ENV_VAR] = str(listen_fd)
    # Line-buffered output so the supervisor sees log lines as they happen.
    env["PYTHONUNBUFFERED"] = "1"
    return env

def _read_pipe(pipe, process_name: str, level: int):
    """Target function for reader threads. Reads and logs lines from a subprocess pipe."""
    proc_logger = logging.getLogger(f"proc.{process_name}")
    try:
        for line_bytes in iter(pipe.readline, b""):
            line = line_bytes.decode("utf-8", errors="replace").rstrip()
            if not line:
                continue
            proc_logger.log(level, line)
    except (OSError, ValueError) as e:
        proc_logger.debug(f"Pipe reader for {process_name} stream exited: {e}")
    finally:
        pipe.close()

def log_process_output(process: subprocess.Popen, name: str):
    """Starts background threads to consume and log a process's stdout/stderr."""
    if process.stdout:
        threading.Thread(target=_read_pipe, args=(process.stdout, name, logging.INFO), daemon=True, name=f"{name}-stdout").start()
    if process.stderr:
        threading.Thread(target=_read_pipe, args=(process.stderr, name, logging.ERROR), daemon=True, name=f"{name}-stderr").start()

def launch_worker(listen_fd: int) -> psutil.Popen:
    """
    Launches a single worker process sharing the given listening socket.

    The worker runs in its own session so that terminal signals reach only the
    primary, which decides what happens to the pool.

    :param listen_fd: File descriptor of the primary's listening socket.
    :return: The psutil.Popen handle of the new worker.
    :raises OSError: If the process could not be started.
    """
    if sys.platform == "win32":
        raise OSError("Sharing the listening socket by descriptor is not supported on Windows.")

    p = psutil.Popen(
        get_worker_args(),
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        stdin=subprocess.DEVNULL,
        cwd=str(settings.BASE_DIR),
        env=get_worker_env(listen_fd),
        pass_fds=(listen_fd,),
        start_new_session=True,
    )
    log_process_output(p, f"worker-{p.pid}")
    log.debug(f"Spawned worker process with PID: {p.pid}")
    return p
