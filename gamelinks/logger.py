"""
Structured logging for gamelinks.

StructuredLogger writes to the console and a daily log file and keeps run
metrics. LogChannel funnels messages from resolver threads through a single
consumer so lines from concurrent lookups never interleave.
"""

import json
import logging
import queue
import sys
import threading
from contextlib import nullcontext
from datetime import datetime
from pathlib import Path
from typing import Optional


class StructuredLogger:
    """
    Centralized logger with support for console and file outputs.
    Tracks metrics for a resolution run.
    """

    def __init__(
        self,
        name: str = "gamelinks",
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = True,
        enable_console: bool = True,
        console_lock: Optional[threading.Lock] = None,
    ):
        """
        Initialize the structured logger.

        Args:
            name: Logger name
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for log files (default: logs/)
            enable_file: Write logs to file
            enable_console: Output logs to console
            console_lock: Lock held while writing a record; shared with the
                interactive prompter so menus are not broken up by log lines
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG)
        self.logger.handlers.clear()
        self.logger.propagate = False
        self.console_lock = console_lock

        self._metrics_lock = threading.Lock()
        self.metrics = {
            "fetches": 0,
            "probes_attempted": 0,
            "probe_hits": 0,
            "searches": 0,
            "exact_matches": 0,
            "prompts": 0,
            "outcomes": {},
            "errors_by_type": {},
        }

        if enable_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(getattr(logging, level.upper()))
            console_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            console_handler.setFormatter(console_formatter)
            self.logger.addHandler(console_handler)

        if enable_file:
            if log_dir is None:
                log_dir = Path("logs")
            log_dir.mkdir(parents=True, exist_ok=True)

            log_file = log_dir / f"gamelinks_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)
            file_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(threadName)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            file_handler.setFormatter(file_formatter)
            self.logger.addHandler(file_handler)

    def debug(self, message: str, **kwargs):
        """Log debug message with optional context."""
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs):
        """Log info message with optional context."""
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message with optional context."""
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs):
        """Log error message with optional context."""
        self._log(logging.ERROR, message, kwargs)

    def log(self, level: int, message: str, **kwargs):
        self._log(level, message, kwargs)

    def _log(self, level: int, message: str, context: dict):
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        with self.console_lock or nullcontext():
            self.logger.log(level, message)

    # Metric tracking methods

    def record(self, metric: str, *args):
        """Dispatch to record_<metric>; lets callers hold a LogChannel instead."""
        getattr(self, f"record_{metric}")(*args)

    def record_fetch(self):
        """Increment the store request counter."""
        with self._metrics_lock:
            self.metrics["fetches"] += 1

    def record_probe(self, hit: bool):
        """Record a direct page probe and whether it found the game."""
        with self._metrics_lock:
            self.metrics["probes_attempted"] += 1
            if hit:
                self.metrics["probe_hits"] += 1

    def record_search(self, exact: bool = False):
        """Record a catalog search."""
        with self._metrics_lock:
            self.metrics["searches"] += 1
            if exact:
                self.metrics["exact_matches"] += 1

    def record_prompt(self):
        with self._metrics_lock:
            self.metrics["prompts"] += 1

    def record_outcome(self, status: str):
        """Record the final status of one game."""
        with self._metrics_lock:
            outcomes = self.metrics["outcomes"]
            outcomes[status] = outcomes.get(status, 0) + 1

    def record_error(self, error_type: str):
        with self._metrics_lock:
            errors = self.metrics["errors_by_type"]
            errors[error_type] = errors.get(error_type, 0) + 1

    def get_metrics(self) -> dict:
        """Return a snapshot of current metrics."""
        with self._metrics_lock:
            snapshot = dict(self.metrics)
            snapshot["outcomes"] = dict(self.metrics["outcomes"])
            snapshot["errors_by_type"] = dict(self.metrics["errors_by_type"])

        attempts = snapshot["probes_attempted"]
        snapshot["probe_hit_rate"] = round(snapshot["probe_hits"] / attempts, 3) if attempts else 0.0
        return snapshot

    def log_metrics_summary(self):
        """Log a summary of current metrics."""
        metrics = self.get_metrics()

        self.info("=== Resolution Metrics ===")
        self.info(f"Store requests: {metrics['fetches']}")
        self.info(
            f"Direct probes: {metrics['probe_hits']}/{metrics['probes_attempted']} "
            f"({metrics['probe_hit_rate'] * 100:.1f}% hit)"
        )
        self.info(f"Searches: {metrics['searches']} ({metrics['exact_matches']} exact)")
        self.info(f"Prompts: {metrics['prompts']}")

        if metrics["outcomes"]:
            self.info("Outcomes:")
            for status, count in sorted(metrics["outcomes"].items()):
                self.info(f"  {status}: {count}")

        if metrics["errors_by_type"]:
            self.info("Error Types:")
            for error_type, count in sorted(metrics["errors_by_type"].items()):
                self.info(f"  {error_type}: {count}")


class LogChannel:
    """
    Bounded queue of log records drained by one consumer thread.

    Exposes the same debug/info/warning/error methods as StructuredLogger, so
    scrapers and the resolver accept either one.
    """

    _CLOSE = object()

    def __init__(self, sink: StructuredLogger, maxsize: int = 15):
        self.sink = sink
        self._queue: "queue.Queue" = queue.Queue(maxsize=maxsize)
        self._consumer: Optional[threading.Thread] = None
        self._closed = False
        self._close_lock = threading.Lock()

    def start(self) -> "LogChannel":
        if self._consumer is None:
            self._consumer = threading.Thread(target=self._drain, name="log-consumer", daemon=True)
            self._consumer.start()
        return self

    def _drain(self):
        while True:
            item = self._queue.get()
            if item is self._CLOSE:
                return
            level, message, context = item
            self.sink.log(level, message, **context)

    def emit(self, level: int, message: str, **kwargs):
        if self._closed:
            raise RuntimeError("log channel is closed")
        self._queue.put((level, message, kwargs))

    def debug(self, message: str, **kwargs):
        self.emit(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs):
        self.emit(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        self.emit(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs):
        self.emit(logging.ERROR, message, **kwargs)

    def record(self, metric: str, *args):
        # Metrics are lock-protected on the sink, no need to queue them.
        self.sink.record(metric, *args)

    def close(self):
        """Stop accepting records and wait until every queued one is written."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        self.start()
        self._queue.put(self._CLOSE)
        self._consumer.join()


# Global logger instance
_global_logger: Optional[StructuredLogger] = None


def get_logger(
    name: str = "gamelinks",
    level: str = "INFO",
    **kwargs
) -> StructuredLogger:
    """
    Get or create the global logger instance.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        **kwargs: Additional arguments passed to StructuredLogger

    Returns:
        StructuredLogger instance
    """
    global _global_logger

    if _global_logger is None:
        _global_logger = StructuredLogger(name=name, level=level, **kwargs)

    return _global_logger


def reset_logger():
    """Reset the global logger (useful for testing)."""
    global _global_logger
    _global_logger = None
