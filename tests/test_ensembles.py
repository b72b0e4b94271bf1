# -*- coding: utf-8 -*-
"""
Unit tests for the cross-series learners.

Covers:
    - Base regressors: exact recall, segmented extrapolation, reduction weights
    - Feature-importance ensemble: informative feature ranked first,
      weights normalised, reproducible across pool sizes
    - Stacked regression: blend weights valid, shapes, row minimum

Run with:
    pytest tests/test_ensembles.py -v
"""

import numpy as np
import pandas as pd
import pytest


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def rng():
    return np.random.RandomState(42)


@pytest.fixture
def informative_dataset(rng):
    """y driven by f0 only; f1..f4 are noise."""
    n = 60
    X = pd.DataFrame(rng.randn(n, 5), columns=[f'f{i}' for i in range(5)])
    y = 3.0 * X['f0'].to_numpy() + rng.randn(n) * 0.05
    return X, y


# ---------------------------------------------------------------------------
# Base regressors
# ---------------------------------------------------------------------------

class TestBaseRegressors:
    def test_nearest_neighbour_recalls_training_rows(self, informative_dataset):
        from multivar.forecasting.regressors import NearestNeighborRegressor

        X, y = informative_dataset
        model = NearestNeighborRegressor(n_neighbors=3).fit(X.to_numpy(), y)
        np.testing.assert_allclose(model.predict(X.to_numpy()[-5:]), y[-5:])
        assert model.get_feature_importance().argmax() == 0

    def test_neighbours_capped_by_rows(self, rng):
        from multivar.forecasting.regressors import NearestNeighborRegressor

        X, y = rng.randn(3, 2), rng.randn(3)
        pred = NearestNeighborRegressor(n_neighbors=10).fit(X, y).predict(X)
        assert pred.shape == (3,)

    def test_segmented_fit_extrapolates_line(self):
        from multivar.forecasting.regressors import SegmentedLinearRegressor

        x = np.linspace(0, 10, 40)
        model = SegmentedLinearRegressor(n_segments=4).fit(x, 2 * x + 1)
        np.testing.assert_allclose(model.predict(np.array([12.0, -1.0])), [25.0, -1.0],
                                   atol=1e-8)

    def test_dimension_reduction_weights(self, informative_dataset):
        from multivar.forecasting.regressors import DimensionReductionRegressor

        X, y = informative_dataset
        model = DimensionReductionRegressor(threshold=0.5).fit(X.to_numpy(), y)
        imp = model.get_feature_importance()
        assert imp.sum() == pytest.approx(1.0)
        assert imp.argmax() == 0

    def test_unfitted_raises(self):
        from multivar.forecasting.regressors import DimensionReductionRegressor

        with pytest.raises(ValueError):
            DimensionReductionRegressor().predict(np.zeros((2, 2)))

    def test_fit_predict_matches_fit_then_predict(self, informative_dataset):
        from multivar.forecasting.regressors import (
            DimensionReductionRegressor, NearestNeighborRegressor,
        )

        X, y = informative_dataset
        X_train, X_test = X.to_numpy()[:-5], X.to_numpy()[-5:]
        for make in (lambda: NearestNeighborRegressor(n_neighbors=3),
                     lambda: DimensionReductionRegressor(threshold=0.2)):
            expected = make().fit(X_train, y[:-5]).predict(X_test)
            np.testing.assert_allclose(make().fit_predict(X_train, y[:-5], X_test), expected)


# ---------------------------------------------------------------------------
# Feature-importance ensemble
# ---------------------------------------------------------------------------

class TestFeatureImportanceEnsemble:
    def test_informative_feature_ranked_first(self, informative_dataset):
        from multivar.forecasting.boost import FeatureImportanceEnsemble

        X, y = informative_dataset
        res = FeatureImportanceEnsemble(learner_trials=40, epochs=40).fit_predict(
            X, y, X.iloc[-4:])
        assert res.feature_weights.index[0] == 'f0'
        assert res.feature_weights.sum() == pytest.approx(1.0)
        assert (res.feature_weights > 0).all()
        assert res.results.shape == (4,)
        assert res.n_kept >= 1

    def test_reproducible_across_pools(self, informative_dataset):
        from multivar.forecasting.boost import FeatureImportanceEnsemble

        X, y = informative_dataset
        inline = FeatureImportanceEnsemble(learner_trials=20, epochs=20).fit_predict(
            X, y, X.iloc[-3:])
        pooled = FeatureImportanceEnsemble(learner_trials=20, epochs=20, n_workers=3,
                                           backend='thread').fit_predict(X, y, X.iloc[-3:])
        pd.testing.assert_series_equal(inline.feature_weights, pooled.feature_weights)
        np.testing.assert_array_equal(inline.results, pooled.results)

    def test_maximised_objective(self, informative_dataset):
        from multivar.forecasting.boost import FeatureImportanceEnsemble
        from multivar.objective import Objective

        def neg_sse(predicted, actual):
            return -float(np.sum((predicted - actual) ** 2))

        X, y = informative_dataset
        res = FeatureImportanceEnsemble(objective=Objective(neg_sse, 'max'),
                                        learner_trials=40, epochs=40).fit_predict(
            X, y, X.iloc[-2:])
        assert res.feature_weights.index[0] == 'f0'

    def test_row_mismatch(self, informative_dataset):
        from multivar.exceptions import InputShapeError
        from multivar.forecasting.boost import FeatureImportanceEnsemble

        X, y = informative_dataset
        with pytest.raises(InputShapeError):
            FeatureImportanceEnsemble().fit_predict(X, y[:-1], X.iloc[-2:])

    def test_unnamed_predictors(self, rng):
        from multivar.forecasting.boost import FeatureImportanceEnsemble

        X = rng.randn(30, 3)
        y = X[:, 2] + rng.randn(30) * 0.01
        res = FeatureImportanceEnsemble(learner_trials=10, epochs=10).fit_predict(
            X, y, X[-2:])
        assert set(res.selected_features) <= {'X1', 'X2', 'X3'}


# ---------------------------------------------------------------------------
# Stacked regression
# ---------------------------------------------------------------------------

class TestStackedRegressor:
    def test_blend(self, informative_dataset):
        from multivar.forecasting.stacking import StackedRegressor

        X, y = informative_dataset
        res = StackedRegressor(cv_folds=3).fit_predict(X, y, X.iloc[-5:])
        assert res.stack.shape == (5,)
        assert sum(res.weights.values()) == pytest.approx(1.0)
        assert all(w >= 0 for w in res.weights.values())
        np.testing.assert_allclose(
            res.stack, res.weights['reg'] * res.reg + res.weights['dim_red'] * res.dim_red)
        assert res.best_k in [1, 2, 3, 5, 8, 13]

    def test_status_does_not_change_numbers(self, informative_dataset):
        import io
        from multivar.forecasting.stacking import StackedRegressor
        from multivar.loggers import ConsoleLogger

        X, y = informative_dataset
        buf = io.StringIO()
        loud = StackedRegressor(status=True, console=ConsoleLogger(stream=buf, use_color=False))
        quiet = StackedRegressor(status=False)
        a = loud.fit_predict(X, y, X.iloc[-3:])
        b = quiet.fit_predict(X, y, X.iloc[-3:])
        np.testing.assert_array_equal(a.stack, b.stack)
        assert 'Stack method 1' in buf.getvalue()

    def test_too_few_rows(self, rng):
        from multivar.exceptions import InputShapeError
        from multivar.forecasting.stacking import StackedRegressor

        with pytest.raises(InputShapeError):
            StackedRegressor().fit_predict(rng.randn(3, 2), rng.randn(3), rng.randn(1, 2))
