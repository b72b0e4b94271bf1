# -*- coding: utf-8 -*-
"""
Nonparametric Base Learners
===========================

Learners combined by the stacked-regression ensemble:

- NearestNeighborRegressor: multivariate distance-weighted k-NN on
  robustly scaled predictors
- SegmentedLinearRegressor: univariate piecewise-linear fit over
  quantile segments, extrapolating with the edge segments
- DimensionReductionRegressor: collapses correlated predictors into one
  correlation-weighted synthetic predictor and fits it with a
  SegmentedLinearRegressor

These learners make no linearity or stationarity assumption beyond the
local segments they fit.
"""

from typing import Optional

import numpy as np
from sklearn.neighbors import KNeighborsRegressor
from sklearn.preprocessing import RobustScaler

from .base import BaseRegressor, feature_correlations


class NearestNeighborRegressor(BaseRegressor):
    """
    Distance-weighted k-nearest-neighbour regression.

    Parameters:
        n_neighbors: Number of neighbours (capped by the training size)
        weights: 'distance' or 'uniform'

    Example:
        >>> model = NearestNeighborRegressor(n_neighbors=5)
        >>> model.fit(X_train, y_train).predict(X_test)
    """

    def __init__(self, n_neighbors: int = 5, weights: str = 'distance'):
        self.n_neighbors = n_neighbors
        self.weights = weights
        self.scaler = RobustScaler()
        self.model: Optional[KNeighborsRegressor] = None
        self.feature_importance_: Optional[np.ndarray] = None

    def fit(self, X: np.ndarray, y: np.ndarray) -> 'NearestNeighborRegressor':
        X = np.asarray(X, dtype=float)
        y = np.asarray(y, dtype=float).ravel()
        X_scaled = self.scaler.fit_transform(X)
        k = max(1, min(self.n_neighbors, X.shape[0]))
        self.model = KNeighborsRegressor(n_neighbors=k, weights=self.weights)
        self.model.fit(X_scaled, y)
        self.feature_importance_ = np.abs(feature_correlations(X, y))
        return self

    def predict(self, X: np.ndarray) -> np.ndarray:
        if self.model is None:
            raise ValueError("Model not fitted yet")
        X_scaled = self.scaler.transform(np.asarray(X, dtype=float))
        return self.model.predict(X_scaled)

    def get_feature_importance(self) -> np.ndarray:
        if self.feature_importance_ is None:
            raise ValueError("Model not fitted yet")
        return self.feature_importance_


class SegmentedLinearRegressor(BaseRegressor):
    """
    Piecewise-linear regression of *y* on a single predictor.

    The predictor range is split at quantiles into ``n_segments`` pieces
    (each holding at least ``min_samples`` points); a line is fitted per
    piece.  Points outside the training range use the nearest edge line,
    so the fit extrapolates trends.
    """

    def __init__(self, n_segments: int = 4, min_samples: int = 5):
        self.n_segments = n_segments
        self.min_samples = min_samples
        self.edges_: Optional[np.ndarray] = None
        self.coefs_: Optional[np.ndarray] = None

    def fit(self, X: np.ndarray, y: np.ndarray) -> 'SegmentedLinearRegressor':
        x = np.asarray(X, dtype=float).ravel()
        y = np.asarray(y, dtype=float).ravel()
        n_seg = max(1, min(self.n_segments, len(x) // self.min_samples))
        edges = np.unique(np.quantile(x, np.linspace(0, 1, n_seg + 1)[1:-1]))
        self.edges_ = edges

        bins = np.searchsorted(edges, x, side='right')
        coefs = []
        for b in range(len(edges) + 1):
            mask = bins == b
            xs, ys = x[mask], y[mask]
            if len(xs) >= 2 and np.ptp(xs) > 1e-12:
                coefs.append(np.polyfit(xs, ys, 1))
            elif len(xs) > 0:
                coefs.append(np.array([0.0, ys.mean()]))
            else:
                coefs.append(np.array([0.0, y.mean()]))
        self.coefs_ = np.vstack(coefs)
        return self

    def predict(self, X: np.ndarray) -> np.ndarray:
        if self.coefs_ is None:
            raise ValueError("Model not fitted yet")
        x = np.asarray(X, dtype=float).ravel()
        bins = np.searchsorted(self.edges_, x, side='right')
        slope = self.coefs_[bins, 0]
        intercept = self.coefs_[bins, 1]
        return slope * x + intercept

    def get_feature_importance(self) -> np.ndarray:
        if self.coefs_ is None:
            raise ValueError("Model not fitted yet")
        return np.ones(1)


class DimensionReductionRegressor(BaseRegressor):
    """
    Correlation-weighted dimension reduction followed by a segmented fit.

    Predictors whose absolute correlation with the response is at least
    ``threshold`` are standardised and summed with their correlations as
    weights.  When no predictor passes, the single most correlated one is
    used.

    Parameters:
        threshold: Minimum absolute correlation for a predictor to count
        n_segments: Segments of the univariate fit
    """

    def __init__(self, threshold: float = 0.0, n_segments: int = 4):
        self.threshold = threshold
        self.n_segments = n_segments
        self.mean_: Optional[np.ndarray] = None
        self.scale_: Optional[np.ndarray] = None
        self.coef_: Optional[np.ndarray] = None
        self.regressor_ = SegmentedLinearRegressor(n_segments=n_segments)

    def _synthetic(self, X: np.ndarray) -> np.ndarray:
        Z = (np.asarray(X, dtype=float) - self.mean_) / self.scale_
        return Z @ self.coef_

    def fit(self, X: np.ndarray, y: np.ndarray) -> 'DimensionReductionRegressor':
        X = np.asarray(X, dtype=float)
        y = np.asarray(y, dtype=float).ravel()
        corr = feature_correlations(X, y)

        keep = np.abs(corr) >= self.threshold
        if not keep.any():
            keep = np.abs(corr) == np.abs(corr).max()
        coef = np.where(keep, corr, 0.0)
        total = np.abs(coef).sum()
        self.coef_ = coef / total if total > 0 else np.ones(len(coef)) / len(coef)

        self.mean_ = X.mean(axis=0)
        scale = X.std(axis=0)
        self.scale_ = np.where(scale > 1e-12, scale, 1.0)

        self.regressor_.fit(self._synthetic(X), y)
        return self

    def predict(self, X: np.ndarray) -> np.ndarray:
        if self.coef_ is None:
            raise ValueError("Model not fitted yet")
        return self.regressor_.predict(self._synthetic(X))

    def get_feature_importance(self) -> np.ndarray:
        if self.coef_ is None:
            raise ValueError("Model not fitted yet")
        return np.abs(self.coef_)
