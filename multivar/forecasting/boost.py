# -*- coding: utf-8 -*-
"""
Feature-Importance Ensemble
===========================

Random-subspace boosting used for dimension reduction ahead of the
stacked regression.

Algorithm:
    1. Hold out the last ``holdout_fraction`` of the training rows.
    2. Score ``learner_trials`` k-NN learners, each on a random subset of
       features, with the injected objective; the best-quartile score
       becomes the acceptance threshold.
    3. Score ``epochs`` further random-subset learners and keep those that
       meet the threshold.
    4. Feature weights = how often each feature appears in kept learners
       (normalised).  Features never kept are dropped.
    5. Test predictions = mean of the kept learners refitted on all rows.

Subsets are drawn up front from a seeded generator, so results do not
depend on the worker count or backend.
"""

import logging
from dataclasses import dataclass
from functools import partial
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd

from ..exceptions import InputShapeError
from ..objective import Objective, make_objective
from ..parallel import map_ordered, worker_pool
from .base import as_frame
from .regressors import NearestNeighborRegressor

logger = logging.getLogger('multivar.boost')


@dataclass
class BoostResult:
    """Output of ``FeatureImportanceEnsemble.fit_predict``."""
    results: np.ndarray
    feature_weights: pd.Series
    threshold: float
    n_kept: int

    @property
    def selected_features(self) -> List[str]:
        return list(self.feature_weights.index)


def _score_subset(subset: Tuple[int, ...], X_train: np.ndarray, y_train: np.ndarray,
                  X_hold: np.ndarray, y_hold: np.ndarray,
                  objective: Objective, n_neighbors: int) -> float:
    cols = list(subset)
    model = NearestNeighborRegressor(n_neighbors=n_neighbors)
    model.fit(X_train[:, cols], y_train)
    return objective.score(model.predict(X_hold[:, cols]), y_hold)


def _predict_subset(subset: Tuple[int, ...], X: np.ndarray, y: np.ndarray,
                    X_test: np.ndarray, n_neighbors: int) -> np.ndarray:
    cols = list(subset)
    model = NearestNeighborRegressor(n_neighbors=n_neighbors)
    return model.fit_predict(X[:, cols], y, X_test[:, cols])


class FeatureImportanceEnsemble:
    """
    Ranks predictors by their survival in well-scoring random learners.

    Parameters:
        objective: Injected objective (default: minimise SSE)
        learner_trials: Learners used to set the acceptance threshold
        epochs: Learners eligible for the final ensemble
        holdout_fraction: Share of trailing rows used for scoring
        n_neighbors: k of the k-NN learners
        n_workers: Pool size for scoring learners
        backend: 'process' or 'thread'
        random_state: Seed for subset sampling

    Example:
        >>> boost = FeatureImportanceEnsemble(learner_trials=50, epochs=50)
        >>> res = boost.fit_predict(X_df, y, X_test_df)
        >>> res.feature_weights.head()
    """

    def __init__(self,
                 objective: Optional[Objective] = None,
                 learner_trials: int = 100,
                 epochs: int = 100,
                 holdout_fraction: float = 0.2,
                 n_neighbors: int = 5,
                 n_workers: int = 1,
                 backend: str = 'process',
                 random_state: int = 42):
        self.objective = objective or make_objective()
        self.learner_trials = learner_trials
        self.epochs = epochs
        self.holdout_fraction = holdout_fraction
        self.n_neighbors = n_neighbors
        self.n_workers = n_workers
        self.backend = backend
        self.random_state = random_state

    def _draw_subsets(self, n_features: int, count: int) -> List[Tuple[int, ...]]:
        rng = np.random.RandomState(self.random_state)
        subsets = []
        for _ in range(count):
            size = rng.randint(1, n_features + 1)
            subsets.append(tuple(sorted(rng.choice(n_features, size, replace=False))))
        return subsets

    def fit_predict(self, X, y, X_test) -> BoostResult:
        """
        Score random-subset learners and return feature weights.

        Args:
            X: Training predictors (DataFrame keeps feature names)
            y: Response, one value per row of *X*
            X_test: Predictors for the forecast rows

        Returns:
            BoostResult with test predictions and feature weights
        """
        X_df = as_frame(X)
        X_test_df = as_frame(X_test, X_df.columns)
        y_arr = np.asarray(y, dtype=float).ravel()
        n, p = X_df.shape
        if len(y_arr) != n:
            raise InputShapeError(f"X has {n} rows but y has {len(y_arr)}")
        if p == 0:
            raise InputShapeError("Feature-importance ensemble needs at least one predictor")

        n_hold = max(1, int(round(n * self.holdout_fraction)))
        if n - n_hold < 2:
            raise InputShapeError(
                f"Too few rows ({n}) for a {self.holdout_fraction:.0%} holdout"
            )

        X_arr = X_df.to_numpy(dtype=float)
        X_test_arr = X_test_df.to_numpy(dtype=float)

        subsets = self._draw_subsets(p, self.learner_trials + self.epochs)
        score_fn = partial(
            _score_subset,
            X_train=X_arr[:-n_hold], y_train=y_arr[:-n_hold],
            X_hold=X_arr[-n_hold:], y_hold=y_arr[-n_hold:],
            objective=self.objective, n_neighbors=self.n_neighbors,
        )

        with worker_pool(self.n_workers, self.backend) as executor:
            scores = np.asarray(map_ordered(score_fn, subsets, executor), dtype=float)

            trial_scores = scores[:self.learner_trials]
            finite = trial_scores[np.isfinite(trial_scores)]
            if len(finite) == 0:
                threshold = self.objective.worst
            elif self.objective.minimize:
                threshold = float(np.quantile(finite, 0.25))
            else:
                threshold = float(np.quantile(finite, 0.75))

            epoch_idx = np.arange(self.learner_trials, len(subsets))
            if self.objective.minimize:
                kept_idx = [i for i in epoch_idx if scores[i] <= threshold]
            else:
                kept_idx = [i for i in epoch_idx if scores[i] >= threshold]
            if not kept_idx:
                kept_idx = [self.objective.best_index(scores)]
            kept = [subsets[i] for i in kept_idx]

            predict_fn = partial(_predict_subset, X=X_arr, y=y_arr,
                                 X_test=X_test_arr, n_neighbors=self.n_neighbors)
            predictions = map_ordered(predict_fn, kept, executor)

        counts = np.zeros(p)
        for subset in kept:
            counts[list(subset)] += 1
        weights = pd.Series(counts / counts.sum(), index=X_df.columns)
        weights = weights[weights > 0].sort_values(ascending=False, kind='mergesort')

        logger.debug(
            f'Boost kept {len(kept)} learners; {len(weights)}/{p} features retained '
            f'(threshold={threshold:.6g})'
        )
        return BoostResult(
            results=np.mean(predictions, axis=0),
            feature_weights=weights,
            threshold=threshold,
            n_kept=len(kept),
        )
