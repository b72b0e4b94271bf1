# -*- coding: utf-8 -*-
"""
Objective Functions
===================

A scalar loss (or score) of ``(predicted, actual)`` plus the direction in
which it should be optimised.  One ``Objective`` instance is threaded
through every stage and every collaborator call of a forecast run.

Objective functions must be module-level callables when the process
backend is used, because they are pickled into worker processes.
"""

from dataclasses import dataclass
from typing import Callable, Iterable, Optional

import numpy as np

from .exceptions import ConfigurationError


_DIRECTIONS = {
    'min': 'min',
    'minimize': 'min',
    'max': 'max',
    'maximize': 'max',
}


def sum_squared_error(predicted: np.ndarray, actual: np.ndarray) -> float:
    """Sum of squared errors (default objective)."""
    predicted = np.asarray(predicted, dtype=float)
    actual = np.asarray(actual, dtype=float)
    return float(np.sum((predicted - actual) ** 2))


def mean_absolute_error(predicted: np.ndarray, actual: np.ndarray) -> float:
    predicted = np.asarray(predicted, dtype=float)
    actual = np.asarray(actual, dtype=float)
    return float(np.mean(np.abs(predicted - actual)))


def mean_absolute_percentage_error(predicted: np.ndarray,
                                   actual: np.ndarray) -> float:
    predicted = np.asarray(predicted, dtype=float)
    actual = np.asarray(actual, dtype=float)
    denom = np.where(np.abs(actual) < 1e-12, 1e-12, np.abs(actual))
    return float(np.mean(np.abs(predicted - actual) / denom))


@dataclass(frozen=True)
class Objective:
    """
    Injected objective: a loss/score function and its direction.

    Parameters:
        fn: Callable ``fn(predicted, actual) -> float``
        direction: 'min' or 'max' ('minimize' / 'maximize' accepted)

    Example:
        >>> obj = Objective(sum_squared_error, 'min')
        >>> obj.is_better(1.0, 2.0)
        True
    """

    fn: Callable[[np.ndarray, np.ndarray], float] = sum_squared_error
    direction: str = 'min'

    def __post_init__(self):
        key = str(self.direction).lower()
        if key not in _DIRECTIONS:
            raise ConfigurationError(
                f"Unknown objective direction {self.direction!r}; "
                f"expected one of {sorted(_DIRECTIONS)}"
            )
        object.__setattr__(self, 'direction', _DIRECTIONS[key])
        if not callable(self.fn):
            raise ConfigurationError("Objective function must be callable")

    @property
    def minimize(self) -> bool:
        return self.direction == 'min'

    @property
    def worst(self) -> float:
        return np.inf if self.minimize else -np.inf

    def score(self, predicted, actual) -> float:
        """Evaluate the objective; non-finite results rank as the worst."""
        value = float(self.fn(np.asarray(predicted, dtype=float),
                              np.asarray(actual, dtype=float)))
        return value if np.isfinite(value) else self.worst

    def is_better(self, candidate: float, incumbent: float) -> bool:
        if self.minimize:
            return candidate < incumbent
        return candidate > incumbent

    def best_index(self, scores: Iterable[float]) -> int:
        """Index of the best score (first one on ties)."""
        scores = np.asarray(list(scores), dtype=float)
        return int(np.argmin(scores) if self.minimize else np.argmax(scores))

    def performance_weights(self, scores: Iterable[float]) -> np.ndarray:
        """
        Convert objective values into non-negative blend weights.

        Minimised objectives are weighted by their inverse, maximised ones
        directly.  Non-finite or non-positive entries get zero weight; if
        nothing survives, weights are equal.
        """
        scores = np.asarray(list(scores), dtype=float)
        if self.minimize:
            raw = np.where(np.isfinite(scores) & (scores > 0),
                           1.0 / np.maximum(scores, 1e-300), 0.0)
            # Exact fits dominate everything else
            exact = np.isfinite(scores) & (scores <= 0)
            if exact.any():
                raw = exact.astype(float)
        else:
            raw = np.where(np.isfinite(scores) & (scores > 0), scores, 0.0)

        total = raw.sum()
        if not np.isfinite(total) or total <= 0:
            return np.ones(len(scores)) / max(len(scores), 1)
        return raw / total


def make_objective(fn: Optional[Callable] = None,
                   direction: str = 'min') -> Objective:
    """Build an ``Objective``, defaulting to sum of squared errors."""
    if isinstance(fn, Objective):
        return fn
    return Objective(fn or sum_squared_error, direction)
