# -*- coding: utf-8 -*-
"""
Seasonality Detection
=====================

Coefficient-of-variation test for seasonal periods.

For a candidate period *p*, the observations taken every *p* steps back
from the last one form a seasonal subsequence.  The period is considered
seasonal when that subsequence varies less (relative to its mean) than
the whole series does.  Detected periods are ordered from most to least
regular.
"""

import logging
from typing import List, Optional

import numpy as np
from scipy.stats import variation

logger = logging.getLogger('multivar.seasonality')


def coefficient_of_variation(values: np.ndarray) -> float:
    values = np.asarray(values, dtype=float)
    if abs(np.mean(values)) < 1e-12:
        # Centred data: dispersion relative to mean magnitude
        scale = np.mean(np.abs(values))
        return float(np.std(values) / scale) if scale > 1e-12 else 0.0
    return float(abs(variation(values)))


def seasonal_subsequence(series: np.ndarray, period: int) -> np.ndarray:
    """Every *period*-th observation counted back from the end, oldest first."""
    series = np.asarray(series, dtype=float)
    return series[::-1][::period][::-1]


def nearest_multiple(period: int, modulo: int, longest: int) -> Optional[int]:
    """Multiple of *modulo* closest to *period* that is at most *longest*."""
    multiple = max(modulo, int(np.floor(period / modulo + 0.5)) * modulo)
    if multiple > longest:
        multiple = (longest // modulo) * modulo
    return multiple if multiple >= modulo else None


class SeasonalityDetector:
    """
    Detects seasonal periods of a univariate series.

    Parameters:
        max_period_fraction: Largest candidate period as a fraction of the
            series length (at least three observations per subsequence)
        min_subsequence: Minimum number of points in a seasonal subsequence

    Example:
        >>> detector = SeasonalityDetector()
        >>> detector.detect(series, modulo=4)
        [4, 8, 12, 3]
    """

    def __init__(self, max_period_fraction: float = 1.0 / 3,
                 min_subsequence: int = 3):
        self.max_period_fraction = max_period_fraction
        self.min_subsequence = min_subsequence

    def coefficients(self, series: np.ndarray) -> dict:
        """Coefficient of variation of each candidate period's subsequence."""
        series = np.asarray(series, dtype=float)
        n = len(series)
        max_period = max(1, int(n * self.max_period_fraction))
        cvs = {}
        for period in range(1, max_period + 1):
            sub = seasonal_subsequence(series, period)
            if len(sub) < self.min_subsequence:
                break
            cvs[period] = coefficient_of_variation(sub)
        return cvs

    def detect(self, series: np.ndarray, modulo: int = 0) -> List[int]:
        """
        Seasonal periods of *series*.

        Args:
            series: 1-D numeric sequence
            modulo: When greater than one, each detected period is also
                rounded to its nearest multiple of *modulo*; those rounded
                periods come first, followed by the detected periods

        Returns:
            Non-empty list of periods; ``[1]`` when nothing is seasonal
        """
        series = np.asarray(series, dtype=float)
        cvs = self.coefficients(series)
        overall = coefficient_of_variation(series)

        detected = [p for p, cv in cvs.items() if p > 1 and cv < overall]
        detected.sort(key=lambda p: (cvs[p], p))

        periods: List[int] = []
        if modulo and modulo > 1 and detected:
            longest = max(cvs)
            for p in detected:
                rounded = nearest_multiple(p, modulo, longest)
                if rounded is not None and rounded not in periods:
                    periods.append(rounded)
        periods.extend(p for p in detected if p not in periods)

        if not periods:
            periods = [1]
        logger.debug(f'Detected periods {periods[:10]} (modulo={modulo})')
        return periods
