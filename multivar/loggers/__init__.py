# -*- coding: utf-8 -*-
"""
Logging Package
===============

Two-channel logging:
  * **ConsoleLogger** — status lines and stage banners (``status=True``)
  * **DebugLogger** — structured JSON capture of the ``multivar`` logger

Usage::

    from multivar.loggers import setup_logging
    console, debug = setup_logging('outputs')
"""

from typing import Tuple

from .context import Colors, LogContext, StageMetrics
from .console_logger import ConsoleLogger
from .debug_logger import DebugLogger
from .decorators import log_execution, log_context, timed_operation


def setup_logging(
    output_dir: str = 'outputs',
) -> Tuple[ConsoleLogger, DebugLogger]:
    """Create and return both loggers.

    Parameters
    ----------
    output_dir : str
        Root output directory; debug JSON goes to ``<output_dir>/logs/``.

    Returns
    -------
    tuple[ConsoleLogger, DebugLogger]
    """
    console = ConsoleLogger()
    debug = DebugLogger(output_dir=f'{output_dir}/logs')
    return console, debug


__all__ = [
    'setup_logging',
    'ConsoleLogger',
    'DebugLogger',
    'Colors',
    'LogContext',
    'StageMetrics',
    'log_execution',
    'log_context',
    'timed_operation',
]
