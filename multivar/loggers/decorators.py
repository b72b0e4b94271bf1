# -*- coding: utf-8 -*-
"""
Logging Decorators and Context Managers
=======================================

``log_execution`` wraps a callable with entry / exit / timing records,
``log_context`` tags records with the current stage or target, and
``timed_operation`` logs a block's elapsed time.  All emit through the
``multivar`` stdlib logger, which ``DebugLogger`` can capture.
"""

from __future__ import annotations

import time
import logging
from contextlib import contextmanager
from functools import wraps
from typing import Any, Callable, Dict, Generator, Optional

from .context import LogContext


def log_execution(
    logger: Optional[logging.Logger] = None,
    level: int = logging.DEBUG,
    show_args: bool = False,
) -> Callable:
    """Decorator that logs function entry, exit, and timing."""

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            log = logger or logging.getLogger('multivar')
            func_name = func.__qualname__

            if show_args:
                args_str = ', '.join(
                    [repr(a)[:50] for a in args]
                    + [f'{k}={repr(v)[:50]}' for k, v in kwargs.items()]
                )
                log.log(level, f'Calling {func_name}({args_str})')
            else:
                log.log(level, f'Calling {func_name}')

            start = time.time()
            try:
                result = func(*args, **kwargs)
            except Exception as exc:
                log.error(f'{func_name} failed after {time.time() - start:.3f}s: '
                          f'{type(exc).__name__}: {exc}')
                raise
            log.log(level, f'{func_name} completed ({time.time() - start:.3f}s)')
            return result

        return wrapper
    return decorator


@contextmanager
def log_context(**kwargs: Any) -> Generator[None, None, None]:
    """Temporarily inject key/value pairs into the thread-local log context."""
    for key, value in kwargs.items():
        LogContext.set(key, value)
    try:
        yield
    finally:
        for key in kwargs:
            LogContext.remove(key)


@contextmanager
def timed_operation(
    logger: logging.Logger,
    operation: str,
    level: int = logging.DEBUG,
    timings: Optional[Dict[str, float]] = None,
) -> Generator[None, None, None]:
    """Log start / finish of a block; optionally record seconds in *timings*."""
    start = time.time()
    logger.log(level, f'Starting: {operation}')
    try:
        yield
    finally:
        elapsed = time.time() - start
        if timings is not None:
            timings[operation] = elapsed
        logger.log(level, f'Finished: {operation} ({elapsed:.3f}s)')


__all__ = [
    'log_execution',
    'log_context',
    'timed_operation',
]
