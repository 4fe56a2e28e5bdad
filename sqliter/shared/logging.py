"""Rich-based logging helpers shared by the server and CLI."""

from __future__ import annotations

from dataclasses import dataclass, replace

from rich.console import Console
from rich.theme import Theme
from rich.traceback import install

install(show_locals=False)

_THEME = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "bold green",
        "debug": "dim",
        "scope": "bold magenta",
    }
)

# All log chatter goes to stderr so CSV or JSON written to stdout stays clean.
# Highlighting is off: SQL fragments and table names must print verbatim.
_stderr_console = Console(stderr=True, theme=_THEME, highlight=False)


@dataclass(frozen=True, slots=True)
class Logger:
    """Lightweight logger facade backed by a Rich console.

    ``scope`` prefixes every line (``[db] ...``) so server and data-layer
    messages can be told apart in a single stream.
    """

    verbose: bool = False
    scope: str | None = None

    @property
    def console(self) -> Console:
        return _stderr_console

    def child(self, scope: str) -> Logger:
        """Return a logger sharing verbosity but tagged with ``scope``."""
        return replace(self, scope=scope)

    def info(self, message: str) -> None:
        self._emit(message, "info")

    def success(self, message: str) -> None:
        self._emit(message, "success")

    def warning(self, message: str) -> None:
        self._emit(message, "warning")

    def error(self, message: str) -> None:
        self._emit(message, "error")

    def debug(self, message: str) -> None:
        if self.verbose:
            self._emit(message, "debug")

    def _emit(self, message: str, style: str) -> None:
        if self.scope:
            _stderr_console.print(f"[{self.scope}] {message}", style=style, markup=False)
        else:
            _stderr_console.print(message, style=style, markup=False)


def get_logger(verbose: bool = False, scope: str | None = None) -> Logger:
    """Return a configured Logger instance."""
    return Logger(verbose=verbose, scope=scope)
