import time
import signal
import socket
import psutil
import logging
import threading
import subprocess
from typing import Callable, Dict, Optional
from clusterweb.local.config import PoolConfiguration
from clusterweb.local.supervisor import process_utils, shutdown, startup
from clusterweb.local.supervisor.lifecycle import (ExitReason, WorkerProcess, WorkerState,
                                                   describe_exit, should_respawn)

log = logging.getLogger(__name__)


class PoolSupervisor:
    """
    Keeps `config.pool_size` worker processes alive for the lifetime of the
    primary process.

    Every worker exit, clean or not, is answered by `respawn_policy`; the
    default policy always spawns exactly one replacement.
    """

    def __init__(
        self,
        config: PoolConfiguration,
        listen_socket: socket.socket,
        respawn_policy: Callable[[ExitReason], bool] = should_respawn,
    ) -> None:
        self.config = config
        self.listen_socket = listen_socket
        self.respawn_policy = respawn_policy

        self.workers: Dict[int, WorkerProcess] = {}
        self.pending_respawns = 0
        self.total_spawned = 0
        self.start_time: Optional[float] = None

        self.shutdown_signal_received = threading.Event()

    @property
    def live_workers(self) -> Dict[int, WorkerProcess]:
        return {pid: w for pid, w in list(self.workers.items()) if not w.is_exited}

    def spawn_worker(self) -> WorkerProcess:
        """Launches one worker on the shared socket and starts tracking it."""
        proc = process_utils.launch_worker(self.listen_socket.fileno())
        worker = WorkerProcess(process=proc)
        self.workers[worker.pid] = worker
        self.total_spawned += 1
        log.info(f"Forked worker {worker.pid}")
        return worker

    def launch_pool(self) -> None:
        """Spawns the initial `pool_size` workers."""
        startup.start_pool(self)

    def handle_worker_exit(self, proc: psutil.Process) -> Optional[WorkerProcess]:
        """
        Exit callback for a single worker.

        Marks the worker as exited, consults the respawn policy and, if asked
        to, spawns exactly one replacement. The exited entry is dropped from
        the bookkeeping either way.

        :param proc: The process handle that terminated, with `returncode` set.
        :return: The replacement worker, or None if none was spawned.
        """
        worker = self.workers.get(proc.pid)
        if worker is None or worker.is_exited:
            log.debug(f"Ignoring exit of untracked process {proc.pid}.")
            return None

        returncode = getattr(proc, "returncode", None)
        reason = worker.mark_exited(returncode)
        log.warning(f"worker {worker.pid} died ({describe_exit(returncode)})")
        self.workers.pop(worker.pid, None)

        if self.shutdown_signal_received.is_set():
            log.debug(f"Supervisor is stopping; not replacing worker {worker.pid}.")
            return None

        if not self.respawn_policy(reason):
            log.info(f"Respawn policy declined a replacement for worker {worker.pid} ({reason.value}).")
            return None

        log.info("Let's fork another worker!")
        try:
            return self.spawn_worker()
        except (OSError, subprocess.SubprocessError) as e:
            self.pending_respawns += 1
            log.error(f"Failed to spawn a replacement worker: {e}. Retrying on the next tick.")
            return None

    def _retry_pending_respawns(self) -> None:
        """Spawns replacements that failed to start earlier."""
        while self.pending_respawns > 0 and not self.shutdown_signal_received.is_set():
            try:
                self.spawn_worker()
            except (OSError, subprocess.SubprocessError) as e:
                log.error(f"Replacement worker still cannot be spawned: {e}")
                return
            self.pending_respawns -= 1

    def _promote_started_workers(self) -> None:
        """Moves workers that are up and alive from STARTING to RUNNING."""
        for worker in list(self.workers.values()):
            if worker.state is WorkerState.STARTING and process_utils.is_alive(worker.process):
                worker.mark_running()
                log.debug(f"Worker {worker.pid} is running.")

    def supervise_once(self) -> None:
        """One monitoring tick: retry, promote, then wait for exits."""
        self._retry_pending_respawns()
        self._promote_started_workers()

        live = [w.process for w in self.live_workers.values()]
        if not live:
            self.shutdown_signal_received.wait(self.config.poll_interval)
            return
        psutil.wait_procs(live, timeout=self.config.poll_interval, callback=self.handle_worker_exit)

    def supervision_loop(self) -> None:
        """Main supervisor loop. Only ends when the primary is told to stop."""
        log.info("Supervisor started. Monitoring worker processes.")
        while not self.shutdown_signal_received.is_set():
            try:
                self.supervise_once()
            except KeyboardInterrupt:
                log.info("Supervisor loop interrupted by user.")
                break

    def request_stop(self, signum: Optional[int] = None, frame=None) -> None:
        """Signal handler: asks the supervision loop to end."""
        if signum is not None:
            log.info(f"Primary received {signal.Signals(signum).name}.")
        self.shutdown_signal_received.set()

    def install_signal_handlers(self) -> None:
        signal.signal(signal.SIGTERM, self.request_stop)

    def stop_all(self) -> None:
        """Terminates every tracked worker; no replacements are spawned afterwards."""
        self.shutdown_signal_received.set()
        procs = [w.process for w in self.live_workers.values()]
        log.info(f"Stopping {len(procs)} worker processes...")
        shutdown.terminate_workers(procs, self.config.shutdown_timeout)
        self.workers.clear()

        if self.start_time:
            runtime = time.strftime('%H:%M:%S', time.gmtime(time.time() - self.start_time))
            log.info(f"Primary stop sequence completed. Total runtime: {runtime}")
        else:
            log.info("Primary stop sequence completed.")

    def run(self) -> None:
        """Launches the pool and supervises it until the primary is stopped."""
        self.start_time = time.time()
        try:
            self.launch_pool()
            self.supervision_loop()
        except KeyboardInterrupt:
            log.info("Primary interrupted by user.")
        finally:
            self.stop_all()
