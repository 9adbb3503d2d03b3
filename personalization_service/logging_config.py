"""
Logging Configuration Module

Queue-based logging for the personalization service. Debounce timers and
background cache loads log from their own threads; a single listener thread
writes every record so lines never interleave.
"""

import logging
import logging.handlers
import sys
from queue import Queue
from typing import Optional, TextIO

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(threadName)s - %(message)s"

# Request logs from the dev server and HTTP client pools
NOISY_LOGGERS = ("werkzeug", "urllib3", "asyncio")


class ThreadSafeLoggingConfig:
    """Owns the root queue handler and the listener thread draining it."""

    def __init__(self):
        self._listener: Optional[logging.handlers.QueueListener] = None
        self._queue_handler: Optional[logging.handlers.QueueHandler] = None

    @property
    def running(self) -> bool:
        return self._listener is not None

    def setup_logging(self, debug: bool = False, stream: Optional[TextIO] = None) -> None:
        """
        Route every record through a queue to ``stream`` (stdout by default).

        Calling it again restarts the listener with the new settings.

        Args:
            debug: Log at DEBUG and keep third-party request logs
            stream: Destination of the formatted records
        """
        self.stop()

        log_queue: Queue = Queue()
        output = logging.StreamHandler(stream or sys.stdout)
        output.setFormatter(logging.Formatter(LOG_FORMAT))
        self._listener = logging.handlers.QueueListener(log_queue, output, respect_handler_level=True)
        self._listener.start()

        self._queue_handler = logging.handlers.QueueHandler(log_queue)
        root_logger = logging.getLogger()
        root_logger.handlers.clear()
        root_logger.addHandler(self._queue_handler)
        root_logger.setLevel(logging.DEBUG if debug else logging.INFO)

        for name in NOISY_LOGGERS:
            noisy = logging.getLogger(name)
            noisy.setLevel(logging.NOTSET if debug else logging.WARNING)
            noisy.propagate = True

    def stop(self) -> None:
        """Drain the queue, stop the listener and detach the root handler."""
        if self._listener is not None:
            self._listener.stop()
            self._listener = None
        if self._queue_handler is not None:
            logging.getLogger().removeHandler(self._queue_handler)
            self._queue_handler = None


# Global logging configuration instance
logging_config = ThreadSafeLoggingConfig()


def setup_logging(debug: bool = False, stream: Optional[TextIO] = None) -> None:
    logging_config.setup_logging(debug, stream)


def stop_logging() -> None:
    logging_config.stop()
