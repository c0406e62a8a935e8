from __future__ import annotations

import logging
import os
import sys
import threading
import weakref

from nicegui import ui

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

# rosbridge transport stack logs every frame at INFO
_NOISY_LOGGERS = ("roslibpy", "autobahn", "twisted")

_LEVEL_COLORS = {
    "TRACE": "\033[32m",
    "DEBUG": "\033[36m",
    "INFO": "\033[37m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[41m",
}
_RESET = "\033[0m"
_DIM = "\033[2m"


def trace_requested(level: int) -> bool:
    """True when the level or PARAMDASH_TRACE asks for transport frames."""
    if level <= TRACE:
        return True
    return os.getenv("PARAMDASH_TRACE", "0").lower() in ("1", "true", "yes", "on")


class AnsiColorFormatter(logging.Formatter):
    """Console formatter: dimmed clock, coloured level, logger name."""

    def __init__(self, colored: bool = True) -> None:
        super().__init__(fmt="%(asctime)s %(levelname)s %(name)s: %(message)s", datefmt="%H:%M:%S")
        self.colored = colored and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        if not self.colored:
            return line
        clock, _, rest = line.partition(" ")
        color = _LEVEL_COLORS.get(record.levelname)
        if color:
            rest = rest.replace(record.levelname, f"{color}{record.levelname}{_RESET}", 1)
        return f"{_DIM}{clock}{_RESET} {rest}"


# ---- Activity log (ui.log widgets on the Parameters tab) ----

_activity_logs: weakref.WeakSet = weakref.WeakSet()
_activity_lock = threading.Lock()


class NiceGuiLogHandler(logging.Handler):
    """Mirror dashboard records into every attached ui.log widget."""

    def __init__(self, level: int = logging.INFO) -> None:
        super().__init__(level=level)
        self.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s", "%H:%M:%S"))

    def emit(self, record: logging.LogRecord) -> None:
        if record.name.startswith(_NOISY_LOGGERS):
            return
        with _activity_lock:
            widgets = list(_activity_logs)
        if not widgets:
            return
        line = self.format(record)
        for widget in widgets:
            try:
                widget.push(line)
            except Exception:
                # the widget went away with its client
                detach_ui_log(widget)


def attach_ui_log(log_widget: ui.log) -> None:
    with _activity_lock:
        _activity_logs.add(log_widget)


def detach_ui_log(log_widget: ui.log) -> None:
    with _activity_lock:
        _activity_logs.discard(log_widget)


def configure_logging(
    level: int = logging.INFO, use_color: bool = True, add_ui_handler: bool = True
) -> logging.Logger:
    """
    Set up the root logger once: a coloured stderr handler and, optionally,
    the activity-log handler (INFO and above). Transport loggers stay at
    WARNING unless tracing is requested through the level or PARAMDASH_TRACE.
    Calling it again only adjusts levels.
    """
    root = logging.getLogger()
    root.setLevel(level)

    if not any(isinstance(h, logging.StreamHandler) for h in root.handlers):
        console = logging.StreamHandler(stream=sys.stderr)
        console.setLevel(level)
        console.setFormatter(AnsiColorFormatter(colored=use_color))
        root.addHandler(console)

    if add_ui_handler and not any(isinstance(h, NiceGuiLogHandler) for h in root.handlers):
        root.addHandler(NiceGuiLogHandler(level=max(level, logging.INFO)))

    noisy_level = level if trace_requested(level) else max(level, logging.WARNING)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)

    return root
