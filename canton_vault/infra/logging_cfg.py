"""
Logging for the vault backend.

Every module logs through logging.getLogger("canton_vault"). Events are
one-line JSON objects produced by log_event(); handlers decide how they are
rendered:
- console: rich handler, or compact JSON lines for log shippers
- file: JSON lines written from a background thread so ledger calls on the
  event loop never wait on disk
- repeated gateway warnings (ledger down, retry hints) are throttled per
  vault / party so an outage does not flood the console
"""

from __future__ import annotations

import atexit
import json
import logging
import queue
import sys
import threading
import time
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from rich.logging import RichHandler

LOGGER_NAME = "canton_vault"

DEFAULT_THROTTLED_EVENTS = frozenset({"ledger_unavailable", "ledger_retry_hint"})

_STOP = object()


def _event_payload(record: logging.LogRecord) -> Optional[Dict[str, Any]]:
    """The JSON object carried by a log_event() record, or None for plain text."""
    msg = record.getMessage()
    if not msg.startswith("{"):
        return None
    try:
        data = json.loads(msg)
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


class JsonFormatter(logging.Formatter):
    """One JSON object per line; log_event() fields are merged in at top level."""

    def format(self, record: logging.LogRecord) -> str:
        out: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
        }
        event = _event_payload(record)
        if event is None:
            out["msg"] = record.getMessage()
        else:
            out.update(event)
        if record.exc_info:
            out["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(out, separators=(",", ":"), default=str)


class AsyncQueueHandler(logging.Handler):
    """
    Hands records to a writer thread that feeds `target`.

    emit() never blocks: when the queue is full the record is counted in
    `dropped` and discarded.
    """

    def __init__(self, target: logging.Handler, max_queue_size: int = 10000):
        super().__init__()
        self.target = target
        self.dropped = 0
        self._records: queue.Queue = queue.Queue(maxsize=max_queue_size)
        self._closed = False
        self._writer = threading.Thread(target=self._drain, name="vault-log-writer", daemon=True)
        self._writer.start()
        atexit.register(self.close)

    def emit(self, record: logging.LogRecord) -> None:
        if self._closed:
            return
        try:
            self._records.put_nowait(record)
        except queue.Full:
            self.dropped += 1

    def _drain(self) -> None:
        while True:
            record = self._records.get()
            if record is _STOP:
                return
            try:
                self.target.handle(record)
            except Exception:
                self.handleError(record)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # blocking put: the stop marker must not be dropped on a full queue
        self._records.put(_STOP)
        self._writer.join(timeout=2.0)
        if self.dropped:
            sys.stderr.write(f"[canton_vault] dropped {self.dropped} log records (queue full)\n")
        self.target.close()
        super().close()


class ThrottledFilter(logging.Filter):
    """
    Let the first of a run of identical gateway warnings through, then mute
    the same (event, vault, party) for `cooldown_sec`.
    """

    def __init__(self, cooldown_sec: float = 30.0, throttled_events: Optional[Iterable[str]] = None):
        super().__init__()
        self.cooldown_sec = cooldown_sec
        self.events = frozenset(throttled_events) if throttled_events is not None else DEFAULT_THROTTLED_EVENTS
        self._muted_until: Dict[tuple, float] = {}

    def filter(self, record: logging.LogRecord) -> bool:
        event = _event_payload(record)
        if event is None or event.get("event") not in self.events:
            return True
        key = (event["event"], event.get("vault"), event.get("party"))
        now = time.monotonic()
        if now < self._muted_until.get(key, float("-inf")):
            return False
        self._muted_until[key] = now + self.cooldown_sec
        return True


def _console_handler(level: int, rich_console: bool) -> logging.Handler:
    if rich_console:
        handler: logging.Handler = RichHandler(show_path=False, markup=False, rich_tracebacks=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JsonFormatter())
    handler.setLevel(level)
    return handler


def _file_handler(path: str, level: int, async_file: bool) -> logging.Handler:
    handler: logging.Handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(JsonFormatter())
    if async_file:
        handler = AsyncQueueHandler(handler)
    handler.setLevel(level)
    return handler


def build_logger(
    name: str = LOGGER_NAME,
    level: int = logging.INFO,
    file_path: Optional[str] = None,
    async_file: bool = True,
    throttle_warnings: bool = True,
    rich_console: bool = True,
) -> logging.Logger:
    """
    Configure the process logger once; later calls only adjust the level.

    Args:
        name: Logger name
        level: Minimum level for the logger and its handlers
        file_path: JSON lines log file (None disables file output)
        async_file: Write the file from a background thread
        throttle_warnings: Mute repeated gateway warnings on the console
        rich_console: Rich console output (False prints JSON lines to stdout)
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    console = _console_handler(level, rich_console)
    if throttle_warnings:
        console.addFilter(ThrottledFilter())
    logger.addHandler(console)
    if file_path:
        logger.addHandler(_file_handler(file_path, level, async_file))
    logger.propagate = False
    return logger


def log_event(logger: logging.Logger, event: str, level: int = logging.INFO, **data: Any) -> None:
    """
    Log one structured event as a JSON object.

    Decimals and other non-JSON values are rendered with str() so amounts
    keep their exact digits:

        log_event(log, "vault_deposit", vault="vault-1", shares=Decimal("95"))
    """
    if logger.isEnabledFor(level):
        logger.log(level, json.dumps({"event": event, **data}, default=str))
