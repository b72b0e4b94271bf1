# -*- coding: utf-8 -*-
"""
Structured Debug Logger
=======================

Captures every record of the ``multivar`` stdlib logger (stage timings,
chosen seasonal parameters, ensemble weights, ...) into one JSON array
file ``<output_dir>/debug_<timestamp>.json`` for post-hoc inspection.

Each entry carries: timestamp, level, module, function, line, stage,
target, message, and an optional structured *data* payload.
"""

from __future__ import annotations

import json
import logging
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from .context import Colors, LogContext


class DebugLogger:
    """Accumulates structured log entries and flushes them to a JSON file."""

    def __init__(self, output_dir: str = 'outputs/logs',
                 logger_name: str = 'multivar'):
        self._dir = Path(output_dir)
        self._dir.mkdir(parents=True, exist_ok=True)
        ts = datetime.now().strftime('%Y%m%d_%H%M%S_%f')
        self._path = self._dir / f'debug_{ts}.json'
        self._entries: List[Dict[str, Any]] = []

        self._stdlib_logger = logging.getLogger(logger_name)
        self._previous_level = self._stdlib_logger.level
        self._stdlib_logger.setLevel(logging.DEBUG)
        self._handler = _InterceptHandler(self)
        self._stdlib_logger.addHandler(self._handler)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def exception(self, message: str, exc: Optional[BaseException] = None) -> None:
        tb = traceback.format_exc() if exc is None else traceback.format_exception(
            type(exc), exc, exc.__traceback__)
        data: Dict[str, Any] = {'traceback': tb}
        if exc is not None and hasattr(exc, 'to_dict'):
            data['error'] = exc.to_dict()
        self._add('ERROR', message, data=data)

    def log_data(self, label: str, payload: Any) -> None:
        """Store an arbitrary structured payload (arrays, frames, dicts)."""
        self._add('DATA', label, data=payload)

    def log_result(self, result: Any) -> None:
        """Store the blended forecast and the chosen per-series parameters."""
        self.log_data('ensemble_forecast', result.ensemble)
        self.log_data('seasonal_params', {
            name: params.to_dict() for name, params in result.seasonal_params.items()
        })
        self.log_data('relevant_variables', {
            name: weights.to_dict() for name, weights in result.relevant_variables.items()
        })

    # ------------------------------------------------------------------
    # Flush / close
    # ------------------------------------------------------------------

    def flush(self) -> str:
        """Write accumulated entries to disk and return the file path."""
        with open(self._path, 'w', encoding='utf-8') as fh:
            json.dump(self._entries, fh, indent=2, default=_json_default,
                      ensure_ascii=False)
        return str(self._path)

    def close(self) -> str:
        """Flush, detach the intercept handler and restore the logger level."""
        path = self.flush()
        self._stdlib_logger.removeHandler(self._handler)
        self._stdlib_logger.setLevel(self._previous_level)
        return path

    @property
    def entry_count(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _add(self, level: str, message: str, *,
             data: Any = None, module: str = '', function: str = '',
             line: int = 0) -> None:
        ctx = LogContext.get()
        entry: Dict[str, Any] = {
            'timestamp': datetime.now().isoformat(),
            'level': level,
            'module': module,
            'function': function,
            'line': line,
            'stage': ctx.get('stage', ''),
            'target': ctx.get('target', ''),
            'message': Colors.strip(str(message)),
        }
        if data is not None:
            entry['data'] = data
        self._entries.append(entry)


class _InterceptHandler(logging.Handler):
    """Bridges stdlib ``logging`` records into :class:`DebugLogger`."""

    def __init__(self, debug_logger: DebugLogger):
        super().__init__(level=logging.DEBUG)
        self._dl = debug_logger

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._dl._add(
                level=record.levelname,
                message=record.getMessage(),
                module=record.module,
                function=record.funcName,
                line=record.lineno,
            )
        except Exception:
            self.handleError(record)


def _json_default(obj: Any) -> Any:
    """Fallback serialiser for numpy / pandas objects."""
    import numpy as np
    import pandas as pd
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, pd.DataFrame):
        return {str(k): v for k, v in obj.to_dict(orient='list').items()}
    if isinstance(obj, pd.Series):
        return {str(k): v for k, v in obj.to_dict().items()}
    return str(obj)


__all__ = ['DebugLogger']
