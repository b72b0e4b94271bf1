# -*- coding: utf-8 -*-
"""
Forecasting Collaborators
=========================

Building blocks behind the multi-series forecaster.

Architecture:
    Univariate stage (one unit per series):
        - seasonality: seasonal period detection by coefficient of variation
        - arma: period / method / weighting search and h-step forecasts
        - univariate: per-series driver and parallel fan-out

    Cross-series stage (one pass per target):
        - lags: lagged feature matrix over observations + forecasts
        - boost: random-subspace feature-importance ensemble
        - stacking: cross-validated stack of k-NN and dimension reduction
        - regressors: the nonparametric base regressions

Example Usage:
    >>> from multivar.forecasting import build_lag_matrix
    >>> lagged = build_lag_matrix(df, forecasts, tau=2)
    >>> lagged.zero_lag_columns
"""

from .base import BaseRegressor
from .seasonality import SeasonalityDetector, coefficient_of_variation
from .arma import ARMAForecaster, ARMAOptimizer, ARMAParams
from .regressors import (
    NearestNeighborRegressor,
    SegmentedLinearRegressor,
    DimensionReductionRegressor,
)
from .boost import FeatureImportanceEnsemble, BoostResult
from .stacking import StackedRegressor, StackResult
from .lags import LaggedFeatures, build_lag_matrix, extend_with_forecasts, lag_label
from .univariate import UnivariateDriver, UnivariateForecast, forecast_all

__all__ = [
    'BaseRegressor',
    'SeasonalityDetector',
    'coefficient_of_variation',
    'ARMAForecaster',
    'ARMAOptimizer',
    'ARMAParams',
    'NearestNeighborRegressor',
    'SegmentedLinearRegressor',
    'DimensionReductionRegressor',
    'FeatureImportanceEnsemble',
    'BoostResult',
    'StackedRegressor',
    'StackResult',
    'LaggedFeatures',
    'build_lag_matrix',
    'extend_with_forecasts',
    'lag_label',
    'UnivariateDriver',
    'UnivariateForecast',
    'forecast_all',
]
