from __future__ import annotations

import logging
import os
import sys
import threading
import weakref

from nicegui import ui

_LEVEL_COLORS = {
    "TRACE": "\033[32m",  # green
    "DEBUG": "\033[36m",  # cyan
    "INFO": "\033[37m",  # light gray
    "WARNING": "\033[33m",  # yellow
    "ERROR": "\033[31m",  # red
    "CRITICAL": "\033[41m",  # red background
}
_RESET = "\033[0m"
_DIM = "\033[2m"

TRACE = 5
logging.addLevelName(TRACE, "TRACE")


def trace_enabled() -> bool:
    """Request/response dumps stay silent unless SMARTSWITCH_TRACE is set."""
    return str(os.getenv("SMARTSWITCH_TRACE", "0")).lower() in ("1", "true", "yes", "on")


class AnsiColorFormatter(logging.Formatter):
    """Compact "HH:MM:SS LEVEL logger: msg" lines, colored when stderr is a tty."""

    def __init__(self, colored: bool = True) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)s %(name)s: %(message)s", datefmt="%H:%M:%S"
        )
        self.colored = colored and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        if not self.colored:
            return line
        ts, sep, rest = line.partition(" ")
        if not sep:
            return line
        level = record.levelname.upper()
        color = _LEVEL_COLORS.get(level)
        if color:
            rest = rest.replace(level, f"{color}{level}{_RESET}", 1)
        return f"{_DIM}{ts}{_RESET} {rest}"


# ---- Event log widgets on the control page ----

_ui_log_targets: set[weakref.ref] = set()
_ui_lock = threading.Lock()


class NiceGuiLogHandler(logging.Handler):
    """Mirror log records into every registered ui.log widget."""

    def __init__(self, level: int = logging.INFO) -> None:
        super().__init__(level=level)
        self.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s", "%H:%M:%S"))

    def emit(self, record: logging.LogRecord) -> None:
        if not _ui_log_targets:
            return
        msg = self.format(record)
        with _ui_lock:
            for ref in list(_ui_log_targets):
                widget = ref()
                if widget is None:
                    _ui_log_targets.discard(ref)
                    continue
                try:
                    widget.push(msg)
                except Exception:
                    # page was closed while the record was in flight
                    _ui_log_targets.discard(ref)


def attach_ui_log(log_widget: ui.log) -> None:
    """Register a ui.log widget as a sink for log records."""
    try:
        ref = weakref.ref(log_widget)
    except TypeError:
        return
    with _ui_lock:
        _ui_log_targets.add(ref)


def detach_ui_log(log_widget: ui.log) -> None:
    try:
        ref = weakref.ref(log_widget)
    except TypeError:
        return
    with _ui_lock:
        _ui_log_targets.discard(ref)


def configure_logging(
    level: int = logging.INFO, use_color: bool = True, add_ui_handler: bool = True
) -> logging.Logger:
    """
    Configure the root logger once:
      - colored console handler on stderr
      - optional handler feeding the page event log
    Calling it again only adjusts the level.
    """
    logger = logging.getLogger()
    logger.setLevel(level)

    if not any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
        console = logging.StreamHandler(stream=sys.stderr)
        console.setLevel(level)
        console.setFormatter(AnsiColorFormatter(colored=use_color))
        logger.addHandler(console)

    if add_ui_handler and not any(isinstance(h, NiceGuiLogHandler) for h in logger.handlers):
        logger.addHandler(NiceGuiLogHandler(level=level))

    # httpx logs every request at INFO; keep it behind our own DEBUG/TRACE
    logging.getLogger("httpx").setLevel(logging.DEBUG if trace_enabled() else logging.WARNING)

    return logger
