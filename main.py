#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Multi-Series Forecaster — Demo Entry Point
==========================================

Usage
-----
    python main.py

Forecast Stages
---------------
1. Univariate estimates    – seasonal autoregression per series (parallel)
2. Lagged feature matrix   – observations + forecasts, lags 0..tau
3. Multivariate estimates  – feature-importance ensemble + stacked regression
4. Blend                   – unweighted mean of both sources
"""

import sys

import numpy as np
import pandas as pd


def main() -> None:
    """Forecast three synthetic series 12 steps ahead."""

    # ------------------------------------------------------------------
    # Lazy imports (avoids heavy loading on --help)
    # ------------------------------------------------------------------
    from multivar import NonparametricVAR, get_default_config
    from multivar.loggers import setup_logging

    config = get_default_config()
    config.var.h = 12
    config.var.tau = 4
    config.paths.ensure_directories()

    rng = np.random.RandomState(123)
    variables = pd.DataFrame({
        'x': rng.randn(100),
        'y': rng.randn(100),
        'z': rng.randn(100),
    })

    console, debug = setup_logging(config.output_dir)
    console.banner('Nonparametric VAR', f'h={config.var.h}, tau={config.var.tau}, series={list(variables.columns)}')

    # ------------------------------------------------------------------
    # Execute
    # ------------------------------------------------------------------
    model = NonparametricVAR.from_config(config, console=console)

    try:
        result = model.forecast(variables)

        console.show_forecast_summary(result)
        debug.log_result(result)
        console.info(f'Debug log: {debug.close()}')

    except Exception as e:
        print(f"\n  ERROR: {e}")
        import traceback
        traceback.print_exc()
        debug.exception('Forecast failed', e)
        debug.close()
        sys.exit(1)


if __name__ == '__main__':
    main()
