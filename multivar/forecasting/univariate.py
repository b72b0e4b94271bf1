# -*- coding: utf-8 -*-
"""
Univariate Forecasts
====================

One unit of work per series, fanned out over the outer worker pool:

    1. detect seasonal periods (modulo the lag depth)
    2. optimise period / method / weighting on a holdout of 2h points,
       using a private inner pool
    3. forecast h steps with the chosen parameters
    4. add the bias shift found by the optimiser

Units share nothing; results are gathered in series order.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import List, Tuple

import numpy as np
import pandas as pd

from ..exceptions import ForecastStageError
from ..objective import Objective
from ..parallel import map_ordered, worker_pool
from .arma import ARMAForecaster, ARMAOptimizer, ARMAParams
from .seasonality import SeasonalityDetector

logger = logging.getLogger('multivar.univariate')


@dataclass
class UnivariateForecast:
    """Forecast of one series plus the parameters that produced it."""
    name: str
    forecast: np.ndarray
    params: ARMAParams
    candidate_periods: List[int] = field(default_factory=list)
    elapsed: float = 0.0


@dataclass
class UnivariateDriver:
    """
    Seasonality → optimisation → forecast → bias shift for one series.

    The collaborators are plain attributes so callers can inject their
    own implementations.  Instances must be picklable for the process
    backend.
    """
    h: int
    tau: int
    objective: Objective
    n_subworkers: int = 1
    detector: SeasonalityDetector = field(default_factory=SeasonalityDetector)
    optimizer: ARMAOptimizer = field(default_factory=ARMAOptimizer)
    forecaster: ARMAForecaster = field(default_factory=ARMAForecaster)

    def training_size(self, n: int) -> int:
        return n - 2 * self.h

    def __call__(self, item: Tuple[str, np.ndarray]) -> UnivariateForecast:
        name, series = item
        start = time.time()
        series = np.asarray(series, dtype=float)

        periods = self.detector.detect(series, modulo=self.tau)
        params = self.optimizer.optimize(
            series, periods,
            training_size=self.training_size(len(series)),
            objective=self.objective,
            n_workers=self.n_subworkers,
        )
        forecast = self.forecaster.forecast(
            series, self.h, params.periods,
            weights=params.weights, method=params.method,
            n_workers=self.n_subworkers,
        ) + params.bias_shift

        return UnivariateForecast(
            name=name,
            forecast=np.asarray(forecast, dtype=float),
            params=params,
            candidate_periods=list(periods),
            elapsed=time.time() - start,
        )


def forecast_all(variables: pd.DataFrame, driver: UnivariateDriver,
                 n_workers: int = 1,
                 backend: str = 'process') -> List[UnivariateForecast]:
    """
    Run *driver* over every column of *variables*.

    The outer pool is opened and closed here; each unit opens and closes
    its own inner pool before returning.  Any failing unit aborts the
    stage with ``ForecastStageError`` chained to the cause.

    Returns:
        One ``UnivariateForecast`` per column, in column order
    """
    names = [str(c) for c in variables.columns]
    items = [(name, variables.iloc[:, j].to_numpy(dtype=float).copy())
             for j, name in enumerate(names)]

    def _fail(idx: int, exc: BaseException) -> ForecastStageError:
        return ForecastStageError(
            f"Univariate forecast failed for series {names[idx]!r}: "
            f"{type(exc).__name__}: {exc}",
            stage='univariate', item=names[idx],
        )

    with worker_pool(n_workers, backend) as executor:
        results = map_ordered(driver, items, executor, on_error=_fail)

    for res in results:
        logger.debug(
            f'{res.name}: periods={res.params.periods} method={res.params.method} '
            f'bias={res.params.bias_shift:.6g} ({res.elapsed:.2f}s)'
        )
    return results
