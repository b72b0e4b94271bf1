# -*- coding: utf-8 -*-
"""
Console Status Logger
=====================

Human-readable progress output for forecast runs: stage banners with
timing, per-target progress lines, and a final forecast table.

Status output is best-effort.  A failing or closed output stream never
interrupts a forecast; the numeric path does not depend on anything
written here.
"""

from __future__ import annotations

import sys
import time
from contextlib import contextmanager
from typing import Any, Generator, List, Optional, Sequence, TextIO

from .context import Colors, LogContext, StageMetrics


# Width of the banner / separator lines
_LINE_W = 70


class ConsoleLogger:
    """Status logger for forecast runs."""

    def __init__(self, stream: Optional[TextIO] = None,
                 use_color: Optional[bool] = None):
        self._stream = stream
        self._color = (Colors.supports_color(self.stream)
                       if use_color is None else use_color)
        self._stage_stack: List[StageMetrics] = []
        self.stages: List[StageMetrics] = []

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    def _c(self, text: str, *codes: str) -> str:
        if not self._color:
            return text
        return ''.join(codes) + text + Colors.RESET

    def _write(self, msg: str) -> None:
        try:
            self.stream.write(msg + '\n')
            self.stream.flush()
        except (OSError, ValueError):
            # Status lines are best-effort; a broken stream must not abort a forecast
            pass

    # ------------------------------------------------------------------
    # Banners
    # ------------------------------------------------------------------

    def banner(self, title: str, subtitle: str = '') -> None:
        self._write('')
        self._write(self._c('=' * _LINE_W, Colors.BOLD, Colors.BLUE))
        self._write(self._c(f'  {title}', Colors.BOLD, Colors.BRIGHT_WHITE))
        if subtitle:
            self._write(self._c(f'  {subtitle}', Colors.DIM))
        self._write(self._c('=' * _LINE_W, Colors.BOLD, Colors.BLUE))

    # ------------------------------------------------------------------
    # Stage management
    # ------------------------------------------------------------------

    @contextmanager
    def stage(self, name: str, total_items: int = 0) -> Generator[StageMetrics, None, None]:
        """Context manager that prints stage start / end with timing.

        Example::

            with console.stage('Currently generating univariate estimates...'):
                forecasts = forecast_all(...)
        """
        metrics = StageMetrics(name=name, start_time=time.time(),
                               items_total=total_items)
        self._stage_stack.append(metrics)
        self.stages.append(metrics)
        LogContext.set('stage', name)

        self._write(self._c(name, Colors.BOLD, Colors.CYAN))
        try:
            yield metrics
        except Exception as exc:
            metrics.end_time = time.time()
            metrics.status = 'failed'
            self._write(self._c(
                f'   FAIL  ({metrics.elapsed:.2f}s) {type(exc).__name__}: {exc}',
                Colors.RED, Colors.BOLD,
            ))
            raise
        else:
            metrics.end_time = time.time()
            metrics.status = 'completed'
            self._write(self._c(f'   OK    ({metrics.elapsed:.2f}s)', Colors.GREEN))
        finally:
            LogContext.remove('stage')
            self._stage_stack.pop()

    def progress(self, index: int, total: int, label: str = 'Variable') -> None:
        """Print ``Variable k of N`` and advance the current stage counter."""
        if self._stage_stack:
            self._stage_stack[-1].items_completed = index
        self._write(self._c(f'{label} {index} of {total}', Colors.WHITE))

    # ------------------------------------------------------------------
    # Step / metric / table helpers
    # ------------------------------------------------------------------

    def step(self, message: str) -> None:
        self._write(self._c(f'   . {message}', Colors.DIM))

    def metric(self, label: str, value: Any, unit: str = '') -> None:
        val_str = f'{value:.4f}' if isinstance(value, float) else str(value)
        suffix = f' {unit}' if unit else ''
        self._write(self._c(f'     {label}: ', Colors.DIM) + f'{val_str}{suffix}')

    def table(self, headers: Sequence[str], rows: Sequence[Sequence[str]],
              col_widths: Optional[Sequence[int]] = None, indent: int = 4) -> None:
        """Print a compact fixed-width table (numbers right-aligned)."""
        if col_widths is None:
            col_widths = [max(len(str(h)) + 2, 10) for h in headers]
        pad = ' ' * indent
        self._write(self._c(pad + '  '.join(f'{h:>{w}}' for h, w in zip(headers, col_widths)),
                            Colors.BOLD))
        self._write(pad + '  '.join('-' * w for w in col_widths))
        for row in rows:
            self._write(pad + '  '.join(f'{str(c):>{w}}' for c, w in zip(row, col_widths)))

    def info(self, message: str) -> None:
        self._write(self._c(f'  i {message}', Colors.GREEN))

    # ------------------------------------------------------------------
    # Run summary
    # ------------------------------------------------------------------

    def show_forecast_summary(self, result: Any, max_rows: int = 24) -> None:
        """Print the blended forecast table and per-stage timings."""
        ensemble = result.ensemble
        self.banner('FORECAST', f'h={len(ensemble)}, {ensemble.shape[1]} series')
        headers = ['t'] + [str(c) for c in ensemble.columns]
        rows = []
        for idx, row in ensemble.head(max_rows).iterrows():
            rows.append([str(idx)] + [f'{v:.4f}' for v in row.values])
        widths = [max(len(headers[0]), max((len(r[0]) for r in rows), default=1))] + \
                 [max(len(h), 10) for h in headers[1:]]
        self.table(headers, rows, widths)
        for stage, seconds in result.timings.items():
            self.metric(f'{stage} stage', seconds, 's')


__all__ = ['ConsoleLogger']
