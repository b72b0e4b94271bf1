# -*- coding: utf-8 -*-
"""
Shared Context, Stage Metrics, and Colour Utilities
===================================================

Thread-local context tracking (current stage / target series), stage
timing metrics, and ANSI colour helpers used by the console and debug
loggers.
"""

import os
import re
import sys
import time
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional


class Colors:
    """ANSI escape sequences for terminal styling."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"
    BRIGHT_WHITE = "\033[97m"

    ANSI_PATTERN = re.compile(r'\033\[[0-9;]*m')

    @classmethod
    def strip(cls, text: str) -> str:
        """Remove all ANSI codes from *text*."""
        return cls.ANSI_PATTERN.sub('', text)

    @classmethod
    def supports_color(cls, stream=None) -> bool:
        """``True`` if *stream* (default stdout) is a colour-capable TTY."""
        if os.getenv("NO_COLOR"):
            return False
        if os.getenv("FORCE_COLOR"):
            return True
        stream = stream or sys.stdout
        isatty = getattr(stream, "isatty", None)
        try:
            return bool(isatty and isatty()) and sys.platform != "win32"
        except ValueError:
            # closed stream
            return False


class LogContext:
    """Thread-local key/value store (e.g. ``stage``, ``target``)."""

    _local = threading.local()

    @classmethod
    def get(cls) -> Dict[str, Any]:
        if not hasattr(cls._local, 'context'):
            cls._local.context = {}
        return cls._local.context

    @classmethod
    def set(cls, key: str, value: Any) -> None:
        cls.get()[key] = value

    @classmethod
    def remove(cls, key: str) -> None:
        cls.get().pop(key, None)


@dataclass
class StageMetrics:
    """Timing and item counts for one forecasting stage."""

    name: str
    start_time: float
    end_time: Optional[float] = None
    status: str = "running"
    items_total: int = 0
    items_completed: int = 0

    @property
    def elapsed(self) -> float:
        end = self.end_time or time.time()
        return end - self.start_time

    @property
    def progress(self) -> float:
        if self.items_total == 0:
            return 0.0
        return (self.items_completed / self.items_total) * 100


__all__ = [
    'Colors',
    'LogContext',
    'StageMetrics',
]
