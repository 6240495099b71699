"""
Capped, severity-tagged text log shared by the store and the syncer.
"""

import threading
from collections import deque
from typing import Literal

from rich.console import Console
from rich.markup import escape

from .config import DEFAULT_LOG_MAX_LINES

Severity = Literal["INFO", "WARNING", "ERROR"]

_STYLES = {"INFO": "green", "WARNING": "yellow", "ERROR": "red"}


class LogBuffer:
    """Append-only log keeping only the most recent ``max_lines`` lines."""

    def __init__(
        self,
        max_lines: int = DEFAULT_LOG_MAX_LINES,
        console: Console | None = None,
    ):
        if max_lines < 1:
            raise ValueError("max_lines must be at least 1")
        self.max_lines = max_lines
        # Optional console that echoes every line as it is appended
        self.console = console
        self._lines: deque[str] = deque(maxlen=max_lines)
        self._lock = threading.Lock()

    def append(self, message: str, severity: Severity | None = None) -> None:
        """Append a message, one log line per line of text."""
        prefix = f"[{severity}] " if severity else ""
        lines = [f"{prefix}{line}" for line in message.splitlines() or [""]]
        with self._lock:
            self._lines.extend(lines)
        if self.console is not None:
            style = _STYLES.get(severity or "", "white")
            for line in lines:
                self.console.print(f"[{style}]{escape(line)}[/{style}]")

    def info(self, message: str) -> None:
        self.append(message, "INFO")

    def warning(self, message: str) -> None:
        self.append(message, "WARNING")

    def error(self, message: str) -> None:
        self.append(message, "ERROR")

    def lines(self) -> list[str]:
        """Get the retained lines, oldest first."""
        with self._lock:
            return list(self._lines)

    def text(self) -> str:
        """Get the retained log as a single newline-joined string."""
        return "\n".join(self.lines())

    def clear(self) -> None:
        with self._lock:
            self._lines.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._lines)
