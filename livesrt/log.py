"""Process-wide leveled logger writing to a stream and, optionally, a file."""

from __future__ import annotations

import sys
import threading
import time
from enum import IntEnum
from typing import IO, Optional, Union

APP_NAME = "SLS"


class LogLevel(IntEnum):
    """Log severities; a lower value is more severe."""

    FATAL = 0
    ERROR = 1
    WARNING = 2
    INFO = 3
    DEBUG = 4
    TRACE = 5


class Logger:
    """Writes timestamped lines at or below the configured level."""

    def __init__(self, level: Union[LogLevel, int] = LogLevel.INFO,
                 stream: Optional[IO[str]] = None) -> None:
        self.level = LogLevel(level)
        self._stream = stream
        self._file: Optional[IO[str]] = None
        self.file_name = ""
        self._lock = threading.Lock()

    @property
    def stream(self) -> IO[str]:
        return self._stream if self._stream is not None else sys.stdout

    def format_line(self, level: Union[LogLevel, int], message: str,
                    now: Optional[float] = None) -> str:
        """Render one log line; ``now`` is seconds since the epoch."""
        if now is None:
            now = time.time()
        seconds = int(now)
        millis = int(now * 1000) % 1000
        stamp = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(seconds))
        return f"{stamp}:{millis:03d} {APP_NAME} {LogLevel(level).name}: {message}\n"

    def log(self, level: Union[LogLevel, int], message: str) -> bool:
        """Write ``message`` if ``level`` passes the filter; return whether it did."""
        level = LogLevel(level)
        if level > self.level:
            return False
        line = self.format_line(level, message)
        with self._lock:
            self.stream.write(line)
            if self._file is not None:
                self._file.write(line)
                self._file.flush()
        return True

    def set_level(self, level: Union[str, LogLevel, int]) -> LogLevel:
        """Set the level by name (any case) or value; unknown names keep the current one."""
        if isinstance(level, str):
            name = level.upper()
            if name in LogLevel.__members__:
                self.level = LogLevel[name]
                self.stream.write(f"set log level='{name}'.\n")
            else:
                self.stream.write(
                    f"!!!wrong log level '{name}', set default '{self.level.name}'.\n"
                )
        else:
            self.level = LogLevel(level)
        return self.level

    def set_file(self, file_name: str) -> bool:
        """Open ``file_name`` for appending unless a log file is already set."""
        with self._lock:
            if self.file_name:
                return False
            self._file = open(file_name, "a", encoding="utf-8")
            self.file_name = file_name
            return True

    def close(self) -> None:
        """Close the log file, if one is open."""
        with self._lock:
            if self._file is not None:
                self._file.close()
                self._file = None
            self.file_name = ""


_instance: Optional[Logger] = None
_instance_lock = threading.Lock()


def get_logger() -> Logger:
    """Return the shared logger, creating it on first use."""
    global _instance
    with _instance_lock:
        if _instance is None:
            _instance = Logger()
        return _instance


def reset_logger() -> None:
    """Close and drop the shared logger."""
    global _instance
    with _instance_lock:
        if _instance is not None:
            _instance.close()
        _instance = None


def log(level: Union[LogLevel, int], message: str) -> bool:
    return get_logger().log(level, message)


def set_log_level(level: Union[str, LogLevel, int]) -> LogLevel:
    return get_logger().set_level(level)


def set_log_file(file_name: str) -> bool:
    return get_logger().set_file(file_name)