# -*- coding: utf-8 -*-
"""
Scoped Worker Pools
===================

Executors are acquired through ``worker_pool`` and always shut down on
exit (pending work cancelled on error paths).  Results are gathered in
submission order, independent of completion order.

A worker count of 1 runs work inline without creating a pool.
"""

import logging
import multiprocessing
import numbers
import pickle
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from contextlib import contextmanager
from typing import Any, Callable, Generator, List, Optional, Sequence

from .exceptions import ConfigurationError, InputShapeError

logger = logging.getLogger('multivar.parallel')

BACKENDS = ('process', 'thread')


def available_cores() -> int:
    return max(1, multiprocessing.cpu_count())


def default_workers() -> int:
    """Outer pool size: half of the available cores."""
    return max(1, available_cores() // 2)


def default_subworkers() -> int:
    """Inner pool size: half of the available cores, minus one."""
    return max(1, available_cores() // 2 - 1)


def resolve_workers(n_workers: Optional[int], default: int) -> int:
    """
    Resolve a worker-count override.

    ``None`` selects *default*; ``-1`` uses every core but one; other
    values must be positive integers.
    """
    if n_workers is None:
        return max(1, int(default))
    if isinstance(n_workers, bool) or not isinstance(n_workers, numbers.Integral):
        raise InputShapeError(f"Worker count must be an integer, got {n_workers!r}")
    if n_workers == -1:
        return max(1, available_cores() - 1)
    if n_workers < 1:
        raise InputShapeError(f"Worker count must be positive, got {n_workers}")
    return int(n_workers)


def check_backend(backend: str) -> str:
    if backend not in BACKENDS:
        raise ConfigurationError(
            f"Unknown backend {backend!r}; expected one of {BACKENDS}"
        )
    return backend


def check_picklable(obj: Any, what: str, backend: str, n_workers: int) -> None:
    """
    Reject *obj* up front when a process pool would have to ship it.

    An unpicklable callable submitted to ``ProcessPoolExecutor`` fails in
    the feeder thread and can leave ``shutdown(wait=True)`` blocked.
    """
    if backend != 'process' or n_workers <= 1:
        return
    try:
        pickle.dumps(obj)
    except (pickle.PicklingError, AttributeError, TypeError) as exc:
        raise ConfigurationError(
            f"{what} cannot be pickled for the process backend ({exc}); "
            f"use a module-level function or backend='thread'"
        ) from exc


@contextmanager
def worker_pool(n_workers: int,
                backend: str = 'process') -> Generator[Optional[Executor], None, None]:
    """
    Scoped executor.

    Yields ``None`` when ``n_workers == 1`` (callers run inline).  The
    executor never outlives the ``with`` block.
    """
    check_backend(backend)
    if n_workers <= 1:
        yield None
        return

    if backend == 'process':
        executor: Executor = ProcessPoolExecutor(max_workers=n_workers)
    else:
        executor = ThreadPoolExecutor(max_workers=n_workers)
    logger.debug(f'Opened {backend} pool with {n_workers} workers')

    failed = False
    try:
        yield executor
    except BaseException:
        failed = True
        raise
    finally:
        executor.shutdown(wait=True, cancel_futures=failed)
        logger.debug(f'Closed {backend} pool ({n_workers} workers)')


def map_ordered(func: Callable[..., Any],
                items: Sequence[Any],
                executor: Optional[Executor] = None,
                on_error: Optional[Callable[[int, BaseException], BaseException]] = None,
                ) -> List[Any]:
    """
    Apply *func* to every item, returning results in input order.

    Args:
        func: Picklable callable (for process pools) taking one item
        items: Work items
        executor: Pool from ``worker_pool``; ``None`` runs inline
        on_error: Optional translator ``(index, exc) -> exception``; the
            translated exception is raised chained to the original

    Returns:
        List of results aligned with *items*
    """
    if executor is None:
        results = []
        for idx, item in enumerate(items):
            try:
                results.append(func(item))
            except Exception as exc:
                if on_error is None:
                    raise
                raise on_error(idx, exc) from exc
        return results

    futures = [executor.submit(func, item) for item in items]
    results = []
    for idx, future in enumerate(futures):
        try:
            results.append(future.result())
        except Exception as exc:
            for pending in futures[idx + 1:]:
                pending.cancel()
            if on_error is None:
                raise
            raise on_error(idx, exc) from exc
    return results
