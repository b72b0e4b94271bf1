# -*- coding: utf-8 -*-
"""
Stacked Regression Ensemble
===========================

Cross-validated stacking of two nonparametric regressions.

Architecture:
    Predictors → time-ordered CV → hyperparameter per method → blend
         ├─ Multivariate k-NN regression       (ŷ_reg, k chosen by CV)
         └─ Dimension-reduction regression     (ŷ_dr,  threshold by CV)

    ŷ_stack = w_reg · ŷ_reg + w_dr · ŷ_dr

The blend weights come from each method's out-of-fold objective value:
inverse objective for minimised objectives, the objective itself for
maximised ones.  Folds respect temporal order (``TimeSeriesSplit``), so
no validation row is ever earlier than its training rows.
"""

import functools
import logging
import warnings
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from sklearn.model_selection import TimeSeriesSplit

from ..loggers import ConsoleLogger
from ..exceptions import InputShapeError
from ..objective import Objective, make_objective
from .base import BaseRegressor, as_frame
from .regressors import DimensionReductionRegressor, NearestNeighborRegressor

logger = logging.getLogger('multivar.stacking')


def _silence_warnings(func):
    """Scope all warning filters to the duration of *func* only."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        with warnings.catch_warnings():
            warnings.simplefilter('ignore')
            return func(*args, **kwargs)
    return wrapper


@dataclass
class StackResult:
    """Output of ``StackedRegressor.fit_predict``."""
    reg: np.ndarray
    dim_red: np.ndarray
    stack: np.ndarray
    weights: Dict[str, float]
    best_k: int
    threshold: float
    cv_scores: Dict[str, float] = field(default_factory=dict)


class StackedRegressor:
    """
    Cross-validated stack of k-NN and dimension-reduction regressions.

    Parameters:
        objective: Injected objective (default: minimise SSE)
        cv_folds: Number of time-ordered CV folds
        k_grid: Candidate neighbour counts
        threshold_grid: Candidate correlation thresholds
        status: Report CV progress on the console
        console: Console logger for status lines

    Example:
        >>> stack = StackedRegressor(cv_folds=3, status=False)
        >>> res = stack.fit_predict(X_df, y, X_test_df)
        >>> res.stack
    """

    def __init__(self,
                 objective: Optional[Objective] = None,
                 cv_folds: int = 3,
                 k_grid: Optional[Sequence[int]] = None,
                 threshold_grid: Optional[Sequence[float]] = None,
                 status: bool = False,
                 console: Optional[ConsoleLogger] = None):
        self.objective = objective or make_objective()
        self.cv_folds = cv_folds
        self.k_grid = list(k_grid or [1, 2, 3, 5, 8, 13])
        self.threshold_grid = list(threshold_grid or [0.0, 0.2, 0.4, 0.6, 0.8])
        self.status = status
        self.console = console

    def _splits(self, n: int) -> List[Tuple[np.ndarray, np.ndarray]]:
        n_splits = max(2, min(self.cv_folds, n - 1))
        return list(TimeSeriesSplit(n_splits=n_splits).split(np.arange(n)))

    def _report(self, message: str) -> None:
        if not self.status:
            return
        if self.console is None:
            self.console = ConsoleLogger()
        self.console.step(message)

    def _cv_score(self, make_model, X: np.ndarray, y: np.ndarray,
                  splits) -> float:
        """Objective on the concatenated out-of-fold predictions."""
        preds, actual = [], []
        for train_idx, val_idx in splits:
            model: BaseRegressor = make_model()
            model.fit(X[train_idx], y[train_idx])
            preds.append(model.predict(X[val_idx]))
            actual.append(y[val_idx])
        return self.objective.score(np.concatenate(preds), np.concatenate(actual))

    @_silence_warnings
    def fit_predict(self, X, y, X_test) -> StackResult:
        """
        Cross-validate both methods, refit on all rows and blend.

        Args:
            X: Training predictors
            y: Response, one value per row of *X*
            X_test: Predictors for the forecast rows

        Returns:
            StackResult exposing the blended ``stack`` forecast
        """
        X_df = as_frame(X)
        X_arr = X_df.to_numpy(dtype=float)
        X_test_arr = as_frame(X_test, X_df.columns).to_numpy(dtype=float)
        y_arr = np.asarray(y, dtype=float).ravel()
        n = X_arr.shape[0]
        if len(y_arr) != n:
            raise InputShapeError(f"X has {n} rows but y has {len(y_arr)}")
        if n < 4:
            raise InputShapeError(f"Stacked regression needs at least 4 rows, got {n}")

        splits = self._splits(n)
        min_train = min(len(tr) for tr, _ in splits)

        # Method 1: multivariate k-NN, neighbour count by CV
        k_grid = [k for k in self.k_grid if k <= min_train] or [1]
        k_scores = []
        for i, k in enumerate(k_grid, start=1):
            self._report(f'Stack method 1: k={k} ({i} of {len(k_grid)})')
            k_scores.append(self._cv_score(
                lambda: NearestNeighborRegressor(n_neighbors=k), X_arr, y_arr, splits))
        best_k = k_grid[self.objective.best_index(k_scores)]
        reg_score = k_scores[self.objective.best_index(k_scores)]

        # Method 2: dimension reduction, correlation threshold by CV
        t_scores = []
        for i, t in enumerate(self.threshold_grid, start=1):
            self._report(f'Stack method 2: threshold={t:.2f} ({i} of {len(self.threshold_grid)})')
            t_scores.append(self._cv_score(
                lambda: DimensionReductionRegressor(threshold=t), X_arr, y_arr, splits))
        best_t = self.threshold_grid[self.objective.best_index(t_scores)]
        dr_score = t_scores[self.objective.best_index(t_scores)]

        w_reg, w_dr = self.objective.performance_weights([reg_score, dr_score])

        reg = NearestNeighborRegressor(n_neighbors=best_k).fit_predict(
            X_arr, y_arr, X_test_arr)
        dim_red = DimensionReductionRegressor(threshold=best_t).fit_predict(
            X_arr, y_arr, X_test_arr)
        stack = w_reg * reg + w_dr * dim_red

        logger.debug(
            f'Stack: k={best_k} (cv={reg_score:.6g}), threshold={best_t} '
            f'(cv={dr_score:.6g}), weights=({w_reg:.3f}, {w_dr:.3f})'
        )
        return StackResult(
            reg=reg,
            dim_red=dim_red,
            stack=stack,
            weights={'reg': float(w_reg), 'dim_red': float(w_dr)},
            best_k=int(best_k),
            threshold=float(best_t),
            cv_scores={'reg': float(reg_score), 'dim_red': float(dr_score)},
        )
