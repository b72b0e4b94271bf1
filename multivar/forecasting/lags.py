# -*- coding: utf-8 -*-
"""
Lagged Feature Matrix
=====================

Extends the observed series with their univariate forecasts and expands
every series into ``tau + 1`` lagged copies.

For lag depth *tau*, row *t* of the result holds, per series *s*::

    [s[t], s[t-1], ..., s[t-tau]]

Columns are grouped by series (input order), lags ascending, and named
``"<series>.tau.<k>"``.  The first *tau* rows lack full history and are
dropped, so the matrix has ``n + h - tau`` rows.
"""

from dataclasses import dataclass
from typing import List, Tuple

import numpy as np
import pandas as pd

from ..exceptions import InputShapeError


def lag_label(series: str, lag: int) -> str:
    return f'{series}.tau.{lag}'


@dataclass(frozen=True)
class LaggedFeatures:
    """
    Lagged feature matrix plus column identity.

    Attributes:
        frame: Lagged values, one column per (series, lag)
        labels: Structured ``(series, lag)`` label of every column
        zero_lag: Positional indices of the lag-0 columns, in series order
        horizon: Number of trailing rows that came from forecasts
    """
    frame: pd.DataFrame
    labels: Tuple[Tuple[str, int], ...]
    zero_lag: Tuple[int, ...]
    horizon: int

    @property
    def zero_lag_columns(self) -> List[str]:
        return [self.frame.columns[i] for i in self.zero_lag]

    @property
    def series_names(self) -> List[str]:
        return [self.labels[i][0] for i in self.zero_lag]

    def predictors(self, target: int) -> pd.DataFrame:
        """All columns except the one at position *target* (a fresh copy)."""
        return self.frame.drop(columns=self.frame.columns[target])

    def response(self, target: int) -> pd.Series:
        return self.frame.iloc[:, target].copy()


def extend_with_forecasts(variables: pd.DataFrame,
                          forecasts: np.ndarray) -> pd.DataFrame:
    """Stack the h × k forecast block beneath the observed rows."""
    forecasts = np.asarray(forecasts, dtype=float)
    if forecasts.ndim != 2 or forecasts.shape[1] != variables.shape[1]:
        raise InputShapeError(
            f"Forecast block must be (h, {variables.shape[1]}), got {forecasts.shape}"
        )
    block = pd.DataFrame(forecasts, columns=variables.columns)
    return pd.concat([variables.reset_index(drop=True), block],
                     ignore_index=True).astype(float)


def build_lag_matrix(variables: pd.DataFrame, forecasts: np.ndarray,
                     tau: int) -> LaggedFeatures:
    """
    Build the lagged feature matrix from observations and forecasts.

    Args:
        variables: Observed series matrix (n × k), never modified
        forecasts: Univariate forecasts (h × k), column order of *variables*
        tau: Lag depth (>= 0)

    Returns:
        LaggedFeatures with ``n + h - tau`` rows and ``k * (tau + 1)`` columns
    """
    if tau < 0:
        raise InputShapeError(f"tau must be non-negative, got {tau}")
    extended = extend_with_forecasts(variables, forecasts)
    values = extended.to_numpy(dtype=float)
    n_rows = values.shape[0]
    if tau >= n_rows:
        raise InputShapeError(
            f"tau={tau} leaves no rows in an extended matrix of {n_rows} rows"
        )

    columns, labels, parts, zero_lag = [], [], [], []
    for j, name in enumerate(extended.columns):
        for lag in range(tau + 1):
            if lag == 0:
                zero_lag.append(len(labels))
            parts.append(values[tau - lag: n_rows - lag, j])
            labels.append((str(name), lag))
            columns.append(lag_label(name, lag))

    frame = pd.DataFrame(np.column_stack(parts), columns=columns)
    return LaggedFeatures(
        frame=frame,
        labels=tuple(labels),
        zero_lag=tuple(zero_lag),
        horizon=int(np.asarray(forecasts).shape[0]),
    )
