"""
Diagnostic logging channel for the CHIP-8 core.

The interpreter reports non-fatal conditions (unknown opcodes) here
instead of through the host's :mod:`logging` configuration, so the core
stays silent unless a host opts in with a :class:`ConsoleLogger`.
"""

from abc import ABC, abstractmethod

LOG_ERROR: int = 0
LOG_WARNING: int = 1
LOG_INFO: int = 2
LOG_DEBUG: int = 3


class ILogger(ABC):
    """Logging interface with level-based filtering."""

    @property
    @abstractmethod
    def level(self) -> int: ...

    @level.setter
    @abstractmethod
    def level(self, value: int): ...

    @abstractmethod
    def log(self, level: int, message: str): ...


class NullLogger(ILogger):
    """No-op logger implementation."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._level = LOG_ERROR
        return cls._instance

    @property
    def level(self) -> int:
        return self._level

    @level.setter
    def level(self, value: int):
        self._level = value

    def log(self, level: int, message: str):
        pass


class ConsoleLogger(ILogger):
    """Logger that prints to console."""

    def __init__(self, level: int = LOG_WARNING):
        self._level = level

    @property
    def level(self) -> int:
        return self._level

    @level.setter
    def level(self, value: int):
        self._level = value

    def log(self, level: int, message: str):
        if level <= self._level:
            print(f"[CHIP8:{level}] {message}")


class RecordingLogger(ILogger):
    """Logger that keeps ``(level, message)`` pairs in memory.

    Useful for hosts that show diagnostics in their own UI.
    """

    def __init__(self, level: int = LOG_DEBUG):
        self._level = level
        self.records: list[tuple[int, str]] = []

    @property
    def level(self) -> int:
        return self._level

    @level.setter
    def level(self, value: int):
        self._level = value

    def log(self, level: int, message: str):
        if level <= self._level:
            self.records.append((level, message))

    def clear(self):
        self.records.clear()


# Default logger instance
DEFAULT_LOGGER: ILogger = NullLogger()
