# -*- coding: utf-8 -*-
"""
Seasonal Autoregressive Forecaster and Optimizer
================================================

Recursive, seasonal-subsequence autoregression.

Model:
    ŷ_{t+1} = Σ_p w_p · f_p( y_{t+1-p}, y_{t+1-2p}, ... )

Where, for each seasonal period p:
    - the subsequence y_{t+1-p}, y_{t+1-2p}, ... is regressed on its
      position and extrapolated one step ahead
    - f_p is a global linear fit ('lin'), a local linear fit on the most
      recent half of the subsequence ('nonlin'), or their mean ('both')
    - w_p are equal weights or inverse coefficient-of-variation weights
      ('informative'), so more regular periods count more

Each forecast is appended to the history before the next step, so an
h-step forecast is h one-step recursions.

The optimizer searches periods (greedy forward selection), method and
weighting scheme on a holdout tail of the series, and returns the mean
holdout residual as a bias-shift correction.
"""

import logging
from dataclasses import dataclass
from functools import partial
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from ..exceptions import ConfigurationError, InputShapeError
from ..objective import Objective, make_objective
from ..parallel import map_ordered, worker_pool
from .seasonality import coefficient_of_variation

logger = logging.getLogger('multivar.arma')

METHODS = ('lin', 'nonlin', 'both')
WEIGHT_SCHEMES = ('equal', 'informative')


def _lagged_subsequence(history: np.ndarray, period: int) -> np.ndarray:
    """Values p, 2p, ... steps before the next time step, oldest first."""
    n = len(history)
    idx = np.arange(n - period, -1, -period)[::-1]
    return history[idx]


def _linear_extrapolate(values: np.ndarray) -> float:
    m = len(values)
    if m < 2:
        return float(values[-1])
    slope, intercept = np.polyfit(np.arange(m, dtype=float), values, 1)
    return float(intercept + slope * m)


def _local_extrapolate(values: np.ndarray) -> float:
    m = len(values)
    if m < 4:
        return _linear_extrapolate(values)
    window = max(2, m // 2)
    local = values[-window:]
    slope, intercept = np.polyfit(np.arange(window, dtype=float), local, 1)
    return float(intercept + slope * window)


def _period_estimate(history: np.ndarray, period: int, method: str) -> float:
    sub = _lagged_subsequence(history, period)
    if method == 'lin':
        return _linear_extrapolate(sub)
    if method == 'nonlin':
        return _local_extrapolate(sub)
    return 0.5 * (_linear_extrapolate(sub) + _local_extrapolate(sub))


@dataclass
class ARMAParams:
    """Hyperparameters chosen by ``ARMAOptimizer``."""
    periods: List[int]
    weights: str
    method: str
    bias_shift: float = 0.0
    objective_value: float = float('nan')
    n_evaluated: int = 0

    def to_dict(self) -> dict:
        return {
            'periods': list(self.periods),
            'weights': self.weights,
            'method': self.method,
            'bias_shift': self.bias_shift,
            'objective_value': self.objective_value,
        }


class ARMAForecaster:
    """
    h-step seasonal autoregressive forecaster.

    Example:
        >>> ARMAForecaster().forecast(series, h=12, periods=[4, 12],
        ...                           weights='informative', method='both')
    """

    def period_weights(self, series: np.ndarray, periods: Sequence[int],
                       weights: Union[str, Sequence[float]]) -> np.ndarray:
        """Resolve a weighting scheme (or explicit weights) to a vector."""
        periods = list(periods)
        if not isinstance(weights, str):
            w = np.asarray(weights, dtype=float)
            if w.shape != (len(periods),):
                raise InputShapeError(
                    f"Expected {len(periods)} period weights, got {w.shape}"
                )
        elif weights == 'equal' or len(periods) == 1:
            w = np.ones(len(periods))
        elif weights == 'informative':
            cvs = np.array([
                coefficient_of_variation(_lagged_subsequence(series, p))
                for p in periods
            ])
            w = 1.0 / np.maximum(cvs, 1e-8)
        else:
            raise ConfigurationError(
                f"Unknown weighting scheme {weights!r}; expected {WEIGHT_SCHEMES}"
            )
        total = w.sum()
        return w / total if total > 0 else np.ones(len(periods)) / len(periods)

    def forecast(self, series: np.ndarray, h: int, periods: Sequence[int],
                 weights: Union[str, Sequence[float]] = 'equal',
                 method: str = 'nonlin',
                 n_workers: int = 1) -> np.ndarray:
        """
        Forecast *h* steps ahead.

        ``n_workers`` is accepted for interface compatibility; the recursion
        is inherently sequential.
        """
        if method not in METHODS:
            raise ConfigurationError(f"Unknown method {method!r}; expected {METHODS}")
        history = np.asarray(series, dtype=float).copy()
        usable = [p for p in periods if p < len(history)] or [1]
        w = self.period_weights(history, usable, weights)

        out = np.empty(h)
        for step in range(h):
            estimates = np.array([_period_estimate(history, p, method) for p in usable])
            out[step] = float(np.dot(w, estimates))
            history = np.append(history, out[step])
        return out


def _evaluate_candidate(candidate: Tuple[Tuple[int, ...], str, str],
                        train: np.ndarray, actual: np.ndarray,
                        objective: Objective) -> float:
    periods, method, scheme = candidate
    predicted = ARMAForecaster().forecast(train, len(actual), list(periods),
                                          weights=scheme, method=method)
    return objective.score(predicted, actual)


class ARMAOptimizer:
    """
    Holdout search over periods, method and weighting scheme.

    Parameters:
        methods: Methods to try (subset of 'lin', 'nonlin', 'both')
        weight_schemes: Schemes to try (subset of 'equal', 'informative')
        max_periods: Maximum number of periods combined in one model
        max_candidates: Number of leading candidate periods considered
        backend: Inner pool backend ('process' or 'thread')

    Example:
        >>> params = ARMAOptimizer().optimize(series, [4, 8, 12],
        ...                                   training_size=len(series) - 24)
        >>> params.periods, params.method, params.bias_shift
    """

    def __init__(self,
                 methods: Sequence[str] = METHODS,
                 weight_schemes: Sequence[str] = WEIGHT_SCHEMES,
                 max_periods: int = 3,
                 max_candidates: int = 10,
                 backend: str = 'process'):
        for m in methods:
            if m not in METHODS:
                raise ConfigurationError(f"Unknown method {m!r}; expected {METHODS}")
        for s in weight_schemes:
            if s not in WEIGHT_SCHEMES:
                raise ConfigurationError(
                    f"Unknown weighting scheme {s!r}; expected {WEIGHT_SCHEMES}"
                )
        self.methods = tuple(methods)
        self.weight_schemes = tuple(weight_schemes)
        self.max_periods = max_periods
        self.max_candidates = max_candidates
        self.backend = backend

    def _grid(self, base: Tuple[int, ...], candidates: Sequence[int]):
        grid = []
        for p in candidates:
            if p in base:
                continue
            periods = base + (p,)
            schemes = self.weight_schemes if len(periods) > 1 else self.weight_schemes[:1]
            for method in self.methods:
                for scheme in schemes:
                    grid.append((periods, method, scheme))
        return grid

    def optimize(self, series: np.ndarray, candidate_periods: Sequence[int],
                 training_size: int,
                 objective: Optional[Objective] = None,
                 n_workers: int = 1) -> ARMAParams:
        """
        Choose hyperparameters on the tail after *training_size*.

        The inner pool of *n_workers* lives only for the duration of this
        call.
        """
        objective = objective or make_objective()
        series = np.asarray(series, dtype=float)
        if not 2 <= training_size < len(series):
            raise InputShapeError(
                f"training_size must be in [2, {len(series) - 1}], got {training_size}"
            )
        train = series[:training_size]
        actual = series[training_size:]

        candidates = [p for p in candidate_periods if p < training_size // 2]
        candidates = candidates[:self.max_candidates] or [1]

        score_fn = partial(_evaluate_candidate, train=train, actual=actual,
                           objective=objective)

        best: Optional[Tuple[Tuple[int, ...], str, str]] = None
        best_score = objective.worst
        base: Tuple[int, ...] = ()
        n_evaluated = 0

        with worker_pool(n_workers, self.backend) as executor:
            for _ in range(self.max_periods):
                grid = self._grid(base, candidates)
                if not grid:
                    break
                scores = map_ordered(score_fn, grid, executor)
                n_evaluated += len(grid)
                idx = objective.best_index(scores)
                if best is not None and not objective.is_better(scores[idx], best_score):
                    break
                best, best_score = grid[idx], scores[idx]
                base = best[0]

        if best is None:
            best = ((candidates[0],), self.methods[0], self.weight_schemes[0])

        periods, method, scheme = best
        predicted = ARMAForecaster().forecast(train, len(actual), list(periods),
                                              weights=scheme, method=method)
        bias_shift = float(np.mean(actual - predicted))

        logger.debug(
            f'ARMA optimum: periods={list(periods)} method={method} '
            f'weights={scheme} objective={best_score:.6g} bias={bias_shift:.6g}'
        )
        return ARMAParams(
            periods=list(periods),
            weights=scheme,
            method=method,
            bias_shift=bias_shift,
            objective_value=float(best_score),
            n_evaluated=n_evaluated,
        )
