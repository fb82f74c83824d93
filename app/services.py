"""Services for application infrastructure management.

Separates process-level concerns (uncaught exception logging) from the
inventory use cases.
"""
from __future__ import annotations

import sys
import threading
import traceback

from loguru import logger


class ExceptionHandlerService:
    """Service for managing global exception handling.

    Captures uncaught exceptions from both the main thread and worker threads,
    logging them before deferring to the original hooks.
    """

    def __init__(self):
        self._original_excepthook = sys.excepthook
        self._original_thread_excepthook = threading.excepthook

    def install(self) -> None:
        """Install global exception handlers for main and worker threads."""
        def excepthook(exc_type, exc_value, exc_traceback):
            tb = "".join(traceback.format_exception(exc_type, exc_value, exc_traceback))
            logger.error("Uncaught exception:\n{}", tb)
            self._original_excepthook(exc_type, exc_value, exc_traceback)

        def thread_excepthook(args: threading.ExceptHookArgs) -> None:
            excepthook(args.exc_type, args.exc_value, args.exc_traceback)

        sys.excepthook = excepthook
        threading.excepthook = thread_excepthook

    def uninstall(self) -> None:
        """Restore original exception handlers."""
        sys.excepthook = self._original_excepthook
        threading.excepthook = self._original_thread_excepthook
