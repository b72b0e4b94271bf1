# -*- coding: utf-8 -*-
"""
Nonparametric Vector Autoregression
===================================

Joint forecasting of several related series in five stages::

    Series matrix (n × k)
        │
        ├─ 1/2. Univariate forecasts, one unit per series (outer pool,
        │       each unit with a private inner pool)
        ├─ 3.   Lagged feature matrix over observations + forecasts
        ├─ 4.   Per target (sequential): feature-importance ensemble
        │       → stacked regression on the retained predictors
        └─ 5.   Unweighted mean of the univariate and multivariate forecasts

Every stage receives the same ``Objective``.  Inputs are validated before
any pool is created; a failing unit of work aborts the run with
``ForecastStageError`` chained to the cause.
"""

import logging
import numbers
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np
import pandas as pd

from .config import Config, get_config
from .exceptions import ForecastStageError, InputShapeError
from .forecasting.arma import ARMAForecaster, ARMAOptimizer, ARMAParams
from .forecasting.boost import FeatureImportanceEnsemble
from .forecasting.lags import LaggedFeatures, build_lag_matrix
from .forecasting.seasonality import SeasonalityDetector
from .forecasting.stacking import StackedRegressor
from .forecasting.univariate import UnivariateDriver, forecast_all
from .loggers import ConsoleLogger, log_context, timed_operation
from .objective import Objective, make_objective, sum_squared_error
from .parallel import (
    check_backend, check_picklable, default_subworkers, default_workers,
    resolve_workers,
)

logger = logging.getLogger('multivar.var')

UNIVARIATE_STATUS = 'Currently generating univariate estimates...'
MULTIVARIATE_STATUS = 'Currently generating multi-variate estimates...'

# Smallest lagged matrix the multivariate collaborators can train on
MIN_LAGGED_ROWS = 5
MIN_TRAINING_SIZE = 3


# =========================================================================
# Input handling
# =========================================================================

def _as_series_matrix(variables: Any) -> pd.DataFrame:
    if isinstance(variables, pd.DataFrame):
        return variables.copy()
    if isinstance(variables, pd.Series):
        name = variables.name if variables.name is not None else 'x1'
        return variables.to_frame(name=name)
    if isinstance(variables, dict):
        lengths = {str(k): len(v) for k, v in variables.items()}
        if len(set(lengths.values())) > 1:
            raise InputShapeError(f"Series have unequal lengths: {lengths}")
        return pd.DataFrame({k: np.asarray(v) for k, v in variables.items()})

    arr = np.asarray(variables)
    if arr.ndim == 1:
        arr = arr.reshape(-1, 1)
    if arr.ndim != 2:
        raise InputShapeError(f"Series matrix must be 2-D, got {arr.ndim}-D input")
    return pd.DataFrame(arr, columns=[f'x{j + 1}' for j in range(arr.shape[1])])


def validate_variables(variables: Any, h: int, tau: int) -> pd.DataFrame:
    """
    Check the series matrix, horizon and lag depth before any stage runs.

    Accepts a DataFrame, a 1-D / 2-D array, a Series, or a dict of
    equal-length sequences.  Unnamed columns become ``x1 .. xk``.

    Returns:
        A float copy of the series matrix (the input is never modified)

    Raises:
        InputShapeError: on any shape, type or value problem
    """
    if isinstance(h, bool) or not isinstance(h, numbers.Integral) or h < 1:
        raise InputShapeError(f"Horizon h must be a positive integer, got {h!r}")
    if isinstance(tau, bool) or not isinstance(tau, numbers.Integral) or tau < 0:
        raise InputShapeError(f"Lag depth tau must be a non-negative integer, got {tau!r}")
    h, tau = int(h), int(tau)

    frame = _as_series_matrix(variables)
    n, k = frame.shape
    if n == 0 or k == 0:
        raise InputShapeError(f"Series matrix is empty (shape {frame.shape})")
    labels = pd.Index([str(c) for c in frame.columns])
    if labels.duplicated().any():
        dupes = sorted(set(labels[labels.duplicated()]))
        raise InputShapeError(f"Duplicate series names: {dupes}")

    non_numeric = [str(c) for c in frame.columns
                   if not pd.api.types.is_numeric_dtype(frame[c])
                   or pd.api.types.is_bool_dtype(frame[c])]
    if non_numeric:
        raise InputShapeError(f"Non-numeric series: {non_numeric}")

    values = frame.to_numpy(dtype=float)
    if not np.isfinite(values).all():
        bad = [str(c) for j, c in enumerate(frame.columns)
               if not np.isfinite(values[:, j]).all()]
        raise InputShapeError(f"Missing or non-finite values in series: {bad}")

    if h >= n:
        raise InputShapeError(f"Horizon h={h} must be smaller than the series length {n}")
    if n - 2 * h < MIN_TRAINING_SIZE:
        raise InputShapeError(
            f"Training window n - 2h = {n - 2 * h} is too short "
            f"(need at least {MIN_TRAINING_SIZE}; n={n}, h={h})"
        )
    if k * (tau + 1) < 2:
        raise InputShapeError(
            "A single series with tau=0 leaves no predictors; use tau >= 1 "
            "or add series"
        )
    if n + h - tau < MIN_LAGGED_ROWS:
        raise InputShapeError(
            f"tau={tau} leaves {n + h - tau} lagged rows "
            f"(need at least {MIN_LAGGED_ROWS})"
        )

    return pd.DataFrame(values, index=frame.index, columns=frame.columns)


def future_index(index: pd.Index, h: int) -> pd.Index:
    """
    Index for the h forecast rows.

    A ``DatetimeIndex`` with an inferable frequency is extended by h
    periods; a ``RangeIndex`` continues with its own step; anything else
    gets ``RangeIndex(n, n + h)``.
    """
    if isinstance(index, pd.DatetimeIndex) and len(index) >= 3:
        freq = index.freq or pd.infer_freq(index)
        if freq is not None:
            return pd.date_range(start=index[-1], periods=h + 1, freq=freq)[1:]
    if isinstance(index, pd.RangeIndex):
        step = index.step
        return pd.RangeIndex(index.stop, index.stop + h * step, step)
    return pd.RangeIndex(len(index), len(index) + h)


# =========================================================================
# Multivariate stage and combiner
# =========================================================================

def multivariate_stage(lagged: LaggedFeatures,
                       boost: FeatureImportanceEnsemble,
                       stacker: StackedRegressor,
                       console: Optional[ConsoleLogger] = None,
                       ) -> Tuple[np.ndarray, Dict[str, pd.Series]]:
    """
    Refine every zero-lag column with cross-series information.

    Targets run sequentially in series order.  For each one the remaining
    columns (sorted by name) are ranked by *boost*; the survivors feed
    *stacker*, whose ``stack`` output is the target's forecast.  Training
    uses every lagged row; the last h rows are the test rows.

    Returns:
        (h × k forecast array, {series name: retained feature weights})
    """
    h = lagged.horizon
    names = lagged.series_names
    total = len(lagged.zero_lag)
    forecasts: List[np.ndarray] = []
    relevant: Dict[str, pd.Series] = {}

    for position, target in enumerate(lagged.zero_lag, start=1):
        name = names[position - 1]
        if console is not None:
            console.progress(position, total)

        with log_context(target=name):
            try:
                X = lagged.predictors(target)
                X = X[sorted(X.columns)]
                y = lagged.response(target)

                ranked = boost.fit_predict(X, y, X.iloc[-h:])
                kept = [c for c in X.columns if c in ranked.feature_weights.index]
                X_kept = X[kept]

                stacked = stacker.fit_predict(X_kept, y, X_kept.iloc[-h:])
                estimate = np.asarray(stacked.stack, dtype=float).ravel()
            except Exception as exc:
                raise ForecastStageError(
                    f"Multivariate estimate failed for target {name!r}: "
                    f"{type(exc).__name__}: {exc}",
                    stage='multivariate', item=name,
                ) from exc

        if len(estimate) != h:
            raise ForecastStageError(
                f"Stacked regression returned {len(estimate)} values for "
                f"target {name!r}, expected {h}",
                stage='multivariate', item=name,
            )
        logger.debug(f'{name}: {len(kept)}/{X.shape[1]} predictors retained')
        forecasts.append(estimate)
        relevant[name] = ranked.feature_weights

    return np.column_stack(forecasts), relevant


def combine_forecasts(univariate: pd.DataFrame,
                      multivariate: pd.DataFrame) -> pd.DataFrame:
    """Element-wise unweighted mean of the two forecast sources."""
    if univariate.shape != multivariate.shape:
        raise ForecastStageError(
            f"Cannot combine forecasts of shape {univariate.shape} and "
            f"{multivariate.shape}",
            stage='combine',
        )
    blended = (univariate.to_numpy(dtype=float)
               + multivariate.to_numpy(dtype=float)) / 2.0
    return pd.DataFrame(blended, index=univariate.index, columns=univariate.columns)


# =========================================================================
# Result container
# =========================================================================

@dataclass
class VARResult:
    """
    Everything produced by one ``NonparametricVAR.forecast`` call.

    Attributes:
        ensemble: Final h × k forecast (mean of the two sources)
        univariate: Per-series autoregressive forecasts
        multivariate: Per-target stacked-regression forecasts
        relevant_variables: Retained predictor weights per target
        seasonal_params: Chosen autoregressive parameters per series
        lagged: Lagged feature matrix used by the multivariate stage
        timings: Seconds spent per stage
    """
    ensemble: pd.DataFrame
    univariate: pd.DataFrame
    multivariate: pd.DataFrame
    relevant_variables: Dict[str, pd.Series]
    seasonal_params: Dict[str, ARMAParams]
    lagged: Optional[LaggedFeatures] = None
    timings: Dict[str, float] = field(default_factory=dict)

    def summary(self) -> str:
        lines = [
            f"Forecast: h={len(self.ensemble)}, series={list(self.ensemble.columns)}",
        ]
        for name, params in self.seasonal_params.items():
            weights = self.relevant_variables.get(str(name))
            top = ', '.join(list(weights.index[:3])) if weights is not None else '-'
            lines.append(
                f"  {name}: periods={params.periods} method={params.method} "
                f"bias={params.bias_shift:+.4g} | top predictors: {top}"
            )
        if self.timings:
            lines.append('  timings: ' + ', '.join(
                f'{stage}={seconds:.2f}s' for stage, seconds in self.timings.items()))
        return '\n'.join(lines)


# =========================================================================
# Orchestrator
# =========================================================================

class NonparametricVAR:
    """
    Nonparametric multi-series forecaster.

    Parameters:
        h: Forecast horizon
        tau: Lag depth of the cross-series feature matrix
        obj_fn: Objective ``fn(predicted, actual)``; default sum of squared errors
        objective: 'min' / 'max' direction, or a ready ``Objective``
        status: Print stage and per-target progress lines
        n_workers: Outer pool size (``None``: half the cores)
        n_subworkers: Inner pool size per series (``None``: half the cores - 1)
        backend: 'process' or 'thread'
        config: Collaborator settings (default: global config)
        detector, optimizer, forecaster, boost, stacker: Collaborator
            overrides; defaults are built from *config*

    Example:
        >>> var = NonparametricVAR(h=12, tau=4, status=False)
        >>> result = var.forecast(df)
        >>> result.ensemble
    """

    def __init__(self,
                 h: int,
                 tau: int = 0,
                 obj_fn=None,
                 objective: Union[str, Objective] = 'min',
                 status: bool = True,
                 n_workers: Optional[int] = None,
                 n_subworkers: Optional[int] = None,
                 backend: Optional[str] = None,
                 config: Optional[Config] = None,
                 detector: Optional[SeasonalityDetector] = None,
                 optimizer: Optional[ARMAOptimizer] = None,
                 forecaster: Optional[ARMAForecaster] = None,
                 boost: Optional[FeatureImportanceEnsemble] = None,
                 stacker: Optional[StackedRegressor] = None,
                 console: Optional[ConsoleLogger] = None):
        self.config = config or get_config()
        par = self.config.parallel

        self.h = h
        self.tau = tau
        self.objective = (objective if isinstance(objective, Objective)
                          else make_objective(obj_fn, objective))
        self.status = bool(status)
        self.backend = check_backend(backend or par.backend)
        self.n_workers = resolve_workers(
            n_workers if n_workers is not None else par.n_workers, default_workers())
        self.n_subworkers = resolve_workers(
            n_subworkers if n_subworkers is not None else par.n_subworkers,
            default_subworkers())
        check_picklable(self.objective, 'Objective function', self.backend,
                        max(self.n_workers, self.n_subworkers))

        self.detector = detector or SeasonalityDetector(
            max_period_fraction=self.config.seasonality.max_period_fraction,
            min_subsequence=self.config.seasonality.min_subsequence,
        )
        self.optimizer = optimizer or ARMAOptimizer(
            methods=self.config.arma.methods,
            weight_schemes=self.config.arma.weight_schemes,
            max_periods=self.config.arma.max_periods,
            max_candidates=self.config.arma.max_candidates,
            backend=self.backend,
        )
        self.forecaster = forecaster or ARMAForecaster()

        self.console = (console or ConsoleLogger()) if self.status else None
        self.boost = boost or FeatureImportanceEnsemble(
            objective=self.objective,
            learner_trials=self.config.boost.learner_trials,
            epochs=self.config.boost.epochs,
            holdout_fraction=self.config.boost.holdout_fraction,
            n_neighbors=self.config.boost.n_neighbors,
            n_workers=self.n_workers,
            backend=self.backend,
            random_state=self.config.boost.random_state,
        )
        self.stacker = stacker or StackedRegressor(
            objective=self.objective,
            cv_folds=self.config.stack.cv_folds,
            k_grid=self.config.stack.k_grid,
            threshold_grid=self.config.stack.threshold_grid,
            status=self.status,
            console=self.console,
        )

    @classmethod
    def from_config(cls, config: Optional[Config] = None, **overrides) -> 'NonparametricVAR':
        """Build a forecaster from ``config.var`` and ``config.parallel``."""
        config = config or get_config()
        kwargs = dict(
            h=config.var.h,
            tau=config.var.tau,
            objective=config.var.objective,
            status=config.var.status,
            config=config,
        )
        kwargs.update(overrides)
        return cls(**kwargs)

    def _driver(self) -> UnivariateDriver:
        return UnivariateDriver(
            h=self.h,
            tau=self.tau,
            objective=self.objective,
            n_subworkers=self.n_subworkers,
            detector=self.detector,
            optimizer=self.optimizer,
            forecaster=self.forecaster,
        )

    def forecast(self, variables: Any) -> VARResult:
        """
        Forecast every series h steps ahead.

        Args:
            variables: Series matrix (DataFrame, 2-D array, or dict of
                equal-length sequences), never modified

        Returns:
            VARResult whose ``ensemble`` is the h × k final forecast

        Raises:
            InputShapeError: invalid input, raised before any work starts
            ForecastStageError: a unit of work failed
        """
        frame = validate_variables(variables, self.h, self.tau)
        names = list(frame.columns)
        index = future_index(frame.index, self.h)
        timings: Dict[str, float] = {}

        logger.debug(
            f'Forecast: n={len(frame)} k={len(names)} h={self.h} tau={self.tau} '
            f'objective={self.objective.direction} workers={self.n_workers}/'
            f'{self.n_subworkers} backend={self.backend}'
        )

        # Stage 1/2: univariate estimates
        with timed_operation(logger, 'univariate', timings=timings):
            if self.console is not None:
                with self.console.stage(UNIVARIATE_STATUS, total_items=len(names)):
                    units = forecast_all(frame, self._driver(), self.n_workers, self.backend)
            else:
                units = forecast_all(frame, self._driver(), self.n_workers, self.backend)

        univariate = pd.DataFrame(
            np.column_stack([u.forecast for u in units]), index=index, columns=names)

        # Stage 3: lagged feature matrix
        with timed_operation(logger, 'lags', timings=timings):
            lagged = build_lag_matrix(frame, univariate.to_numpy(), self.tau)

        # Stage 4: multivariate estimates
        with timed_operation(logger, 'multivariate', timings=timings):
            if self.console is not None:
                with self.console.stage(MULTIVARIATE_STATUS, total_items=len(names)):
                    estimates, relevant = multivariate_stage(
                        lagged, self.boost, self.stacker, self.console)
            else:
                estimates, relevant = multivariate_stage(lagged, self.boost, self.stacker)

        multivariate = pd.DataFrame(estimates, index=index, columns=names)

        # Stage 5: blend
        ensemble = combine_forecasts(univariate, multivariate)

        return VARResult(
            ensemble=ensemble,
            univariate=univariate,
            multivariate=multivariate,
            relevant_variables=relevant,
            seasonal_params={name: u.params for name, u in zip(names, units)},
            lagged=lagged,
            timings=timings,
        )


def forecast_var(variables: Any,
                 h: int,
                 tau: int = 0,
                 obj_fn=sum_squared_error,
                 objective: str = 'min',
                 status: bool = True,
                 n_workers: Optional[int] = None,
                 n_subworkers: Optional[int] = None,
                 **options) -> pd.DataFrame:
    """
    One-call forecast of every series in *variables*.

    Extra keyword *options* (``backend``, ``config``, collaborators) are
    passed to :class:`NonparametricVAR`.

    Returns:
        h × k DataFrame, columns named and ordered as the input
    """
    model = NonparametricVAR(
        h=h, tau=tau, obj_fn=obj_fn, objective=objective, status=status,
        n_workers=n_workers, n_subworkers=n_subworkers, **options,
    )
    return model.forecast(variables).ensemble
