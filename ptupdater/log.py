"""Levelled console, CSV and kernel-log output."""

from __future__ import annotations

import sys
import time
from enum import IntEnum
from typing import Iterable, Optional, TextIO


class VerboseLevel(IntEnum):
    """Message levels; higher numbers are more verbose."""

    QUIET = 0
    FATAL = 1
    RESULT = 2
    ERROR = 3
    WARNING = 4
    INFO = 5
    DEBUG = 6
    PTC = 98
    NOLEVEL_NOPREFIX = 99


_TIMESTAMPABLE = frozenset(VerboseLevel) - {VerboseLevel.QUIET}
_KMSG_MARKING = frozenset(
    {VerboseLevel.WARNING, VerboseLevel.ERROR, VerboseLevel.FATAL}
)
_CSV_PREFIXES = {
    VerboseLevel.FATAL: ".FATAL,",
    VerboseLevel.ERROR: ".ERROR,",
    VerboseLevel.WARNING: ".WARNING,",
}
_KMSG_PREFIXES = {
    VerboseLevel.FATAL: "FATAL: ",
    VerboseLevel.ERROR: "ERROR: ",
    VerboseLevel.WARNING: "WARNING: ",
}


def _uptime_seconds() -> int:
    clock = getattr(time, "CLOCK_BOOTTIME", None)
    if clock is not None:
        return int(time.clock_gettime(clock))
    return int(time.monotonic())


class Log:
    """Writes messages to the console, an optional CSV file and the kernel log.

    ``stdout`` and ``stderr`` default to the interpreter's streams at the
    time of writing. When ``daemon_log_file`` is set, console output goes
    there instead. ``kmsg_path`` of ``None`` disables kernel-log output.
    """

    def __init__(
        self,
        verbose_level: int = VerboseLevel.FATAL,
        stdout: Optional[TextIO] = None,
        stderr: Optional[TextIO] = None,
        kmsg_path: Optional[str] = "/dev/kmsg",
    ) -> None:
        self.verbose_level = VerboseLevel.FATAL
        self.set_verbose_level(verbose_level)
        self.stdout = stdout
        self.stderr = stderr
        self.kmsg_path = kmsg_path
        self.csv_file: Optional[TextIO] = None
        self.daemon_log_file: Optional[TextIO] = None
        self.kmsg_written = False
        self._timestamp_levels: frozenset = frozenset()

    def set_verbose_level(self, level: int) -> None:
        """Set the console verbosity, capped at DEBUG."""
        self.verbose_level = VerboseLevel(min(int(level), VerboseLevel.DEBUG))

    def set_timestamp_levels(self, levels: Iterable[int]) -> None:
        """Enable uptime timestamps for exactly the given levels."""
        self._timestamp_levels = frozenset(VerboseLevel(lvl) for lvl in levels)

    def timestamp_enabled(self, level: int) -> bool:
        """Return whether console messages at ``level`` carry a timestamp."""
        if level not in _TIMESTAMPABLE:
            self.output(
                VerboseLevel.FATAL,
                f"Unrecognized log level enum value: {int(level)}\n",
            )
            return False
        return VerboseLevel(level) in self._timestamp_levels

    def clear_kmsg_written(self) -> None:
        """Forget that a warning or error has been reported."""
        self.kmsg_written = False

    def output(self, level: int, message: str) -> None:
        """Emit ``message`` at ``level`` to every configured destination."""
        if level in _KMSG_MARKING:
            self.kmsg_written = True
        self._to_console(level, message)
        if self.csv_file is not None:
            self._to_csv(level, message)
        self._to_kmsg(level, message)

    def _console_target(self, level: int) -> tuple[Optional[str], bool]:
        verbose = self.verbose_level
        if level == VerboseLevel.QUIET:
            return None, False
        if level == VerboseLevel.FATAL and verbose >= VerboseLevel.FATAL:
            return "FATAL: ", True
        if level == VerboseLevel.RESULT and verbose >= VerboseLevel.RESULT:
            return "RESULT: ", False
        if level == VerboseLevel.ERROR and verbose >= VerboseLevel.ERROR:
            return "ERROR:  ", True
        if level == VerboseLevel.WARNING and verbose >= VerboseLevel.WARNING:
            return "WARNING: ", False
        if level == VerboseLevel.INFO and verbose >= VerboseLevel.INFO:
            return "INFO: ", False
        if level == VerboseLevel.PTC:
            return "PTC: ", False
        if level == VerboseLevel.NOLEVEL_NOPREFIX:
            return "", False
        if level >= VerboseLevel.DEBUG and verbose >= VerboseLevel.DEBUG:
            return "DEBUG:  ", False
        return None, False

    def _to_console(self, level: int, message: str) -> None:
        prefix, use_stderr = self._console_target(level)
        if prefix is None:
            return
        text = prefix + message
        if self.timestamp_enabled(level):
            text = f"[{time.monotonic():13.6f}] {text}"
        stream = self.daemon_log_file
        if stream is None:
            if use_stderr:
                stream = self.stderr if self.stderr is not None else sys.stderr
            else:
                stream = self.stdout if self.stdout is not None else sys.stdout
        stream.write(text)
        stream.flush()

    def _to_csv(self, level: int, message: str) -> None:
        prefix = _CSV_PREFIXES.get(level)
        if prefix is None or self.csv_file is None:
            return
        self.csv_file.write(f"{prefix}[{_uptime_seconds()}] {message}")

    def _to_kmsg(self, level: int, message: str) -> None:
        prefix = _KMSG_PREFIXES.get(level)
        if prefix is None or self.kmsg_path is None:
            return
        try:
            with open(self.kmsg_path, "a") as kmsg:
                kmsg.write(f"PtMFG {prefix}{message}")
        except OSError:
            pass


_default_log = Log()


def get_log() -> Log:
    """Return the process-wide log."""
    return _default_log


def output(level: int, message: str) -> None:
    """Emit ``message`` at ``level`` through the process-wide log."""
    _default_log.output(level, message)