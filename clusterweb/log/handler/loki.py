import os
import sys
import socket
import logging
import requests
import threading
from collections import deque
from typing import Any, Deque, Dict, List, Optional

from clusterweb import settings


class LokiHandler(logging.Handler):
    """
    A logging handler that ships records to a Grafana Loki instance
    in batches using a background thread.
    """
    def __init__(self, url: str, org_id: Optional[str] = None, role: Optional[str] = None,
                 flush_interval: Optional[float] = None, batch_size: int = 200):
        """
        Initializes the Loki handler.

        :param url: The base URL of the Loki instance.
        :param org_id: The tenant ID for Loki (e.g., 'X-Scope-OrgID').
        :param role: The role of this process ('primary' or 'worker'), used as a label.
        :param flush_interval: Seconds between periodic flushes.
        :param batch_size: Flush as soon as this many records are buffered.
        """
        super().__init__()
        self.url = f"{url.rstrip('/')}/loki/api/v1/push"
        self.org_id = org_id
        self.role = role or "unknown"
        self.log_buffer: Deque[Dict[str, Any]] = deque()
        self.buffer_lock = threading.Lock()
        self.flush_interval = flush_interval if flush_interval is not None else settings.LOG_BUFFER_FLUSH_INTERVAL
        self.batch_size = batch_size
        self.hostname = os.getenv('HOSTNAME') or socket.gethostname()

        self.stop_event = threading.Event()
        self.flush_thread = threading.Thread(target=self._periodic_flush, daemon=True, name="LokiFlushThread")
        self.flush_thread.start()

    def _periodic_flush(self) -> None:
        """Periodically flushes the log buffer until the handler is closed."""
        while not self.stop_event.wait(self.flush_interval):
            self.flush()
        self.flush()

    def build_entry(self, record: logging.LogRecord) -> Dict[str, Any]:
        """Turns a log record into a single Loki stream entry."""
        # Worker lines relayed by the primary are already formatted.
        if record.name.startswith('proc.'):
            msg = record.getMessage()
            logger_name = record.name.split('.', 1)[-1]
        else:
            msg = self.format(record)
            logger_name = record.name

        return {
            "stream": {
                "job": "clusterweb",
                "role": self.role,
                "level": record.levelname.lower(),
                "hostname": self.hostname,
                "logger": logger_name,
            },
            "values": [
                [str(int(record.created * 1e9)), msg]
            ]
        }

    def emit(self, record: logging.LogRecord) -> None:
        try:
            entry = self.build_entry(record)
        except Exception:
            self.handleError(record)
            return

        to_send: List[Dict[str, Any]] = []
        with self.buffer_lock:
            self.log_buffer.append(entry)
            if len(self.log_buffer) >= self.batch_size:
                to_send = self._drain_locked()
        if to_send:
            self._send(to_send)

    def _drain_locked(self) -> List[Dict[str, Any]]:
        """Empties the buffer. The caller must hold `buffer_lock`."""
        entries = list(self.log_buffer)
        self.log_buffer.clear()
        return entries

    def _send(self, entries: List[Dict[str, Any]]) -> None:
        """Pushes a batch of entries to Loki. Runs without holding the buffer lock."""
        payload = {"streams": entries}
        headers = {'Content-Type': 'application/json'}
        if self.org_id:
            headers['X-Scope-OrgID'] = self.org_id

        try:
            response = requests.post(self.url, json=payload, headers=headers, timeout=5)
            # 204 No Content is the success status for Loki push
            if response.status_code != 204:
                print(f"ERROR: Loki returned non-204 status: {response.status_code} - {response.text}", file=sys.stderr)
        except requests.RequestException as e:
            print(f"CRITICAL: Failed to send {len(entries)} logs to Loki: {e}", file=sys.stderr)

    def flush(self) -> None:
        with self.buffer_lock:
            entries = self._drain_locked()
        if entries:
            self._send(entries)

    def close(self) -> None:
        """Stops the flush thread after a final flush."""
        self.stop_event.set()
        if self.flush_thread.is_alive() and self.flush_thread is not threading.current_thread():
            self.flush_thread.join(timeout=self.flush_interval + 2)
        super().close()
