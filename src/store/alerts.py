"""
Alert sinks - user-facing messages raised by catalog operations.
"""

from __future__ import annotations

import sys
from abc import ABC, abstractmethod


class AlertSink(ABC):
    """Where the catalog state sends messages meant for the user."""

    @abstractmethod
    def show_error(self, message: str) -> None:
        """Show a transient error message."""
        pass

    @abstractmethod
    def show_success(self, message: str) -> None:
        """Show a transient success message."""
        pass

    @abstractmethod
    def show_blocking_dialog(self, title: str, content: str) -> None:
        """Show a dialog the user has to dismiss."""
        pass


class ConsoleAlertSink(AlertSink):
    """Prints alerts for the command line."""

    def __init__(self, out=None, err=None):
        self._out = out or sys.stdout
        self._err = err or sys.stderr

    def show_error(self, message: str) -> None:
        print(f"ERROR: {message}", file=self._err)

    def show_success(self, message: str) -> None:
        print(message, file=self._out)

    def show_blocking_dialog(self, title: str, content: str) -> None:
        print(f"ERROR: {title}\n{content}", file=self._err)
