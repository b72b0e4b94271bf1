# -*- coding: utf-8 -*-
"""
Exception Hierarchy for Multi-Series Forecasting
================================================

Three failure families:

- ``InputShapeError``     — malformed inputs, raised before any stage runs
- ``ConfigurationError``  — unknown option values (direction, backend, ...)
- ``ForecastStageError``  — a collaborator failed inside a pipeline stage;
                            always chained to the original exception
"""

from typing import Any, Dict, Optional


class MultiVARError(Exception):
    """Base class for every error raised by the forecaster."""


class InputShapeError(MultiVARError, ValueError):
    """Series matrix, horizon or lag depth cannot be forecast."""


class ConfigurationError(MultiVARError, ValueError):
    """An option holds a value the forecaster does not understand."""


class ForecastStageError(MultiVARError, RuntimeError):
    """
    A pipeline stage aborted because one of its work items failed.

    Attributes:
        stage: Stage name ('univariate', 'multivariate', 'combine')
        item: Series or target column that failed, if any
    """

    def __init__(self, message: str, stage: str, item: Optional[str] = None):
        super().__init__(message)
        self.stage = stage
        self.item = item

    def to_dict(self) -> Dict[str, Any]:
        cause = self.__cause__
        return {
            'error_type': type(self).__name__,
            'message': str(self),
            'stage': self.stage,
            'item': self.item,
            'original_type': type(cause).__name__ if cause else None,
            'original_error': str(cause) if cause else None,
        }
