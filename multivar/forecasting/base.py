# -*- coding: utf-8 -*-
"""
Base Classes for Cross-Series Regressors
========================================

Abstract base class shared by the learners used inside the
feature-importance and stacked-regression ensembles.
"""

import numpy as np
import pandas as pd
from abc import ABC, abstractmethod


class BaseRegressor(ABC):
    """
    Abstract base class for the ensemble learners.

    All regressors must implement:
    - fit(): Train the model
    - predict(): Make predictions
    - get_feature_importance(): Return feature importance scores
    """

    @abstractmethod
    def fit(self, X: np.ndarray, y: np.ndarray) -> 'BaseRegressor':
        """
        Fit the model to training data.

        Args:
            X: Feature matrix of shape (n_samples, n_features)
            y: Target values of shape (n_samples,)

        Returns:
            Self for method chaining
        """
        pass

    @abstractmethod
    def predict(self, X: np.ndarray) -> np.ndarray:
        """
        Make predictions on new data.

        Args:
            X: Feature matrix of shape (n_samples, n_features)

        Returns:
            Predictions of shape (n_samples,)
        """
        pass

    @abstractmethod
    def get_feature_importance(self) -> np.ndarray:
        """
        Get feature importance scores.

        Returns:
            Array of shape (n_features,) with importance scores
        """
        pass

    def fit_predict(self, X_train: np.ndarray, y_train: np.ndarray,
                    X_test: np.ndarray) -> np.ndarray:
        """
        Fit model and make predictions in one call.

        Args:
            X_train: Training features
            y_train: Training targets
            X_test: Test features

        Returns:
            Predictions on test data
        """
        self.fit(X_train, y_train)
        return self.predict(X_test)


def feature_correlations(X: np.ndarray, y: np.ndarray) -> np.ndarray:
    """Pearson correlation of each column of *X* with *y* (0 for constants)."""
    X = np.asarray(X, dtype=float)
    y = np.asarray(y, dtype=float).ravel()
    Xc = X - X.mean(axis=0)
    yc = y - y.mean()
    denom = np.sqrt((Xc ** 2).sum(axis=0) * (yc ** 2).sum())
    with np.errstate(divide='ignore', invalid='ignore'):
        corr = (Xc * yc[:, None]).sum(axis=0) / denom
    return np.nan_to_num(corr, nan=0.0, posinf=0.0, neginf=0.0)


def as_frame(X, names=None) -> pd.DataFrame:
    """Wrap array-like predictors in a DataFrame (``X1..Xp`` when unnamed)."""
    if isinstance(X, pd.DataFrame):
        return X
    arr = np.asarray(X, dtype=float)
    if arr.ndim == 1:
        arr = arr.reshape(-1, 1)
    cols = list(names) if names is not None else [f'X{i + 1}' for i in range(arr.shape[1])]
    return pd.DataFrame(arr, columns=cols)
