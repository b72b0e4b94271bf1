# -*- coding: utf-8 -*-
"""
Nonparametric Multi-Series Forecasting
======================================

Forecasts several related series jointly: a nonlinear autoregressive
estimate per series, refined by a cross-series regression ensemble over
lagged observations, blended by an unweighted mean.

Example Usage:
    >>> from multivar import forecast_var
    >>> forecast = forecast_var(df, h=12, tau=4, status=False)
    >>>
    >>> # Full result with per-stage outputs
    >>> from multivar import NonparametricVAR
    >>> result = NonparametricVAR(h=12, tau=4).forecast(df)
    >>> result.relevant_variables['x']
"""

from .exceptions import (
    MultiVARError,
    InputShapeError,
    ConfigurationError,
    ForecastStageError,
)
from .objective import (
    Objective,
    make_objective,
    sum_squared_error,
    mean_absolute_error,
    mean_absolute_percentage_error,
)
from .config import Config, get_config, get_default_config, set_config, reset_config
from .var import (
    NonparametricVAR,
    VARResult,
    forecast_var,
    validate_variables,
    future_index,
    multivariate_stage,
    combine_forecasts,
)

__version__ = '0.1.0'

__all__ = [
    'NonparametricVAR',
    'VARResult',
    'forecast_var',
    'validate_variables',
    'future_index',
    'multivariate_stage',
    'combine_forecasts',
    'Objective',
    'make_objective',
    'sum_squared_error',
    'mean_absolute_error',
    'mean_absolute_percentage_error',
    'Config',
    'get_config',
    'get_default_config',
    'set_config',
    'reset_config',
    'MultiVARError',
    'InputShapeError',
    'ConfigurationError',
    'ForecastStageError',
]
