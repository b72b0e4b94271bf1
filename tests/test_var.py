# -*- coding: utf-8 -*-
"""
Integration tests for the multi-series forecaster.

Covers:
    - 3 series × 100 observations, h=12, tau=4 → 12×3 forecast named x, y, z
    - Blend is the unweighted mean of the two sources
    - Invalid inputs fail before any collaborator runs
    - Collaborator failures abort with ForecastStageError, pools released
    - Status output never changes the numbers
    - Re-ordering input columns permutes the output identically
    - Custom and maximised objectives reach every scoring stage
    - Forecast index continues the input index

Run with:
    pytest tests/test_var.py -v
"""

import collections
import io
import sys
import threading

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
def xyz(rng):
    """Three unrelated standard-normal series of 100 observations."""
    return pd.DataFrame({
        'x': rng.randn(100),
        'y': rng.randn(100),
        'z': rng.randn(100),
    })


@pytest.fixture
def coupled(rng):
    """Three series where b follows a with a one-step delay."""
    t = np.arange(60)
    a = 10 + np.sin(2 * np.pi * t / 6) + rng.randn(60) * 0.1
    b = np.r_[10.0, a[:-1]] + rng.randn(60) * 0.05
    c = 4 + 0.05 * t + rng.randn(60) * 0.2
    return pd.DataFrame({'a': a, 'b': b, 'c': c})


@pytest.fixture
def fast_config():
    from multivar.config import Config

    cfg = Config()
    cfg.boost.learner_trials = 20
    cfg.boost.epochs = 20
    return cfg


def _model(config, **kwargs):
    from multivar.var import NonparametricVAR

    params = dict(h=6, tau=2, status=False, n_workers=1, n_subworkers=1, config=config)
    params.update(kwargs)
    return NonparametricVAR(**params)


class _RecordingDetector:
    """Seasonality detector that counts its calls."""

    def __init__(self):
        self.calls = 0

    def detect(self, series, modulo=0):
        self.calls += 1
        return [1]


class _FailingStacker:
    def fit_predict(self, X, y, X_test):
        raise ValueError("stack exploded")


_scoring_sites = collections.Counter()
_scoring_lock = threading.Lock()


def _recording_sse(predicted, actual):
    # frames: this function, Objective.score, then the scoring site
    site = sys._getframe(2).f_code.co_name
    with _scoring_lock:
        _scoring_sites[site] += 1
    return float(np.sum((predicted - actual) ** 2))


def _negative_sse(predicted, actual):
    return -float(np.sum((predicted - actual) ** 2))


# ---------------------------------------------------------------------------
# End-to-end
# ---------------------------------------------------------------------------

class TestForecastVar:
    def test_three_series_scenario(self, xyz):
        from multivar import forecast_var

        out = forecast_var(xyz, h=12, tau=4, status=False, n_workers=1, n_subworkers=1)
        assert out.shape == (12, 3)
        assert list(out.columns) == ['x', 'y', 'z']
        assert np.isfinite(out.to_numpy()).all()
        assert list(out.index) == list(range(100, 112))

    def test_input_not_modified(self, coupled, fast_config):
        before = coupled.copy()
        _model(fast_config).forecast(coupled)
        pd.testing.assert_frame_equal(coupled, before)


class TestVARResult:
    def test_result_parts(self, coupled, fast_config):
        result = _model(fast_config).forecast(coupled)

        assert result.univariate.shape == (6, 3)
        assert result.multivariate.shape == (6, 3)
        assert set(result.relevant_variables) == {'a', 'b', 'c'}
        assert set(result.seasonal_params) == {'a', 'b', 'c'}
        assert result.lagged.frame.shape == (60 + 6 - 2, 9)
        assert {'univariate', 'lags', 'multivariate'} <= set(result.timings)
        assert 'a:' in result.summary()

    def test_blend_is_unweighted_mean(self, coupled, fast_config):
        result = _model(fast_config).forecast(coupled)
        expected = (result.univariate + result.multivariate) / 2.0
        pd.testing.assert_frame_equal(result.ensemble, expected)

    def test_relevant_variables_exclude_target(self, coupled, fast_config):
        result = _model(fast_config).forecast(coupled)
        for name, weights in result.relevant_variables.items():
            assert f'{name}.tau.0' not in weights.index
            assert weights.sum() == pytest.approx(1.0)

    def test_array_input_named(self, coupled, fast_config):
        result = _model(fast_config).forecast(coupled.to_numpy())
        assert list(result.ensemble.columns) == ['x1', 'x2', 'x3']

    def test_single_series_with_lags(self, coupled, fast_config):
        result = _model(fast_config, tau=2).forecast(coupled[['a']])
        assert result.ensemble.shape == (6, 1)

    def test_from_config(self, coupled, fast_config):
        from multivar.var import NonparametricVAR

        fast_config.var.h = 4
        fast_config.var.tau = 1
        fast_config.var.status = False
        model = NonparametricVAR.from_config(fast_config, n_workers=1, n_subworkers=1)
        assert model.forecast(coupled).ensemble.shape == (4, 3)


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------

class TestForecastProperties:
    def test_status_invariance(self, coupled, fast_config):
        from multivar.loggers import ConsoleLogger

        buf = io.StringIO()
        loud = _model(fast_config, status=True,
                      console=ConsoleLogger(stream=buf, use_color=False)).forecast(coupled)
        quiet = _model(fast_config, status=False).forecast(coupled)
        pd.testing.assert_frame_equal(loud.ensemble, quiet.ensemble, check_exact=True)

        text = buf.getvalue()
        assert 'Currently generating univariate estimates...' in text
        assert 'Currently generating multi-variate estimates...' in text
        assert 'Variable 3 of 3' in text

    def test_broken_status_stream(self, coupled, fast_config):
        from multivar.loggers import ConsoleLogger

        stream = io.StringIO()
        stream.close()
        result = _model(fast_config, status=True,
                        console=ConsoleLogger(stream=stream, use_color=False)).forecast(coupled)
        assert result.ensemble.shape == (6, 3)

    def test_column_order_equivariance(self, coupled, fast_config):
        original = _model(fast_config).forecast(coupled).ensemble
        order = ['c', 'a', 'b']
        permuted = _model(fast_config).forecast(coupled[order]).ensemble
        pd.testing.assert_frame_equal(permuted, original[order], check_exact=True)

    def test_tau_zero(self, coupled, fast_config):
        result = _model(fast_config, tau=0).forecast(coupled)
        lagged = result.lagged
        assert list(lagged.frame.columns) == ['a.tau.0', 'b.tau.0', 'c.tau.0']
        np.testing.assert_array_equal(lagged.frame.to_numpy()[-6:],
                                      result.univariate.to_numpy())

    def test_process_pool_matches_inline(self, coupled, fast_config):
        inline = _model(fast_config, h=4, tau=1).forecast(coupled)
        pooled = _model(fast_config, h=4, tau=1, n_workers=2,
                        backend='process').forecast(coupled)
        pd.testing.assert_frame_equal(inline.ensemble, pooled.ensemble)


class TestCustomObjective:
    def test_custom_function_reaches_every_stage(self, coupled, fast_config):
        _scoring_sites.clear()
        model = _model(fast_config, obj_fn=_recording_sse, n_workers=2,
                       n_subworkers=2, backend='thread')
        result = model.forecast(coupled)

        assert result.ensemble.shape == (6, 3)
        assert _scoring_sites['_evaluate_candidate'] > 0
        assert _scoring_sites['_score_subset'] > 0
        assert _scoring_sites['_cv_score'] > 0

    def test_maximised_objective(self, coupled, fast_config):
        from multivar import forecast_var

        out = forecast_var(coupled, h=6, tau=2, obj_fn=_negative_sse, objective='max',
                           status=False, n_workers=1, n_subworkers=1, config=fast_config)
        assert out.shape == (6, 3)
        assert list(out.columns) == ['a', 'b', 'c']
        assert np.isfinite(out.to_numpy()).all()

    def test_lambda_rejected_for_process_pool(self, fast_config):
        from multivar.exceptions import ConfigurationError

        with pytest.raises(ConfigurationError, match='pickled'):
            _model(fast_config, obj_fn=lambda p, a: float(np.sum((p - a) ** 2)),
                   n_workers=2, backend='process')

    def test_lambda_accepted_without_process_pool(self, coupled, fast_config):
        model = _model(fast_config, obj_fn=lambda p, a: float(np.sum((p - a) ** 2)),
                       n_workers=2, backend='thread')
        assert model.forecast(coupled).ensemble.shape == (6, 3)
        _model(fast_config, obj_fn=lambda p, a: 0.0, backend='process')


# ---------------------------------------------------------------------------
# Failure handling
# ---------------------------------------------------------------------------

class TestValidation:
    def test_horizon_not_shorter_than_history(self, coupled, fast_config):
        from multivar.exceptions import InputShapeError

        detector = _RecordingDetector()
        with pytest.raises(InputShapeError):
            _model(fast_config, h=60, detector=detector).forecast(coupled)
        assert detector.calls == 0

    @pytest.mark.parametrize("h,tau", [(0, 0), (-2, 1), (3, -1), (2.5, 0), (True, 0)])
    def test_bad_horizon_or_lag(self, coupled, fast_config, h, tau):
        from multivar.exceptions import InputShapeError

        with pytest.raises(InputShapeError):
            _model(fast_config, h=h, tau=tau).forecast(coupled)

    def test_training_window_too_short(self, coupled, fast_config):
        from multivar.exceptions import InputShapeError

        with pytest.raises(InputShapeError, match='Training window'):
            _model(fast_config, h=29).forecast(coupled)

    def test_missing_values(self, coupled, fast_config):
        from multivar.exceptions import InputShapeError

        bad = coupled.copy()
        bad.iloc[5, 1] = np.nan
        with pytest.raises(InputShapeError, match="'b'"):
            _model(fast_config).forecast(bad)

    def test_non_numeric(self, coupled, fast_config):
        from multivar.exceptions import InputShapeError

        bad = coupled.copy()
        bad['label'] = 'q'
        with pytest.raises(InputShapeError):
            _model(fast_config).forecast(bad)

    def test_duplicate_names(self, coupled, fast_config):
        from multivar.exceptions import InputShapeError

        bad = pd.concat([coupled, coupled[['a']]], axis=1)
        with pytest.raises(InputShapeError):
            _model(fast_config).forecast(bad)

    def test_unequal_lengths(self, fast_config):
        from multivar.exceptions import InputShapeError

        with pytest.raises(InputShapeError):
            _model(fast_config).forecast({'a': np.ones(40), 'b': np.ones(39)})

    def test_single_series_without_lags(self, coupled, fast_config):
        from multivar.exceptions import InputShapeError

        with pytest.raises(InputShapeError):
            _model(fast_config, tau=0).forecast(coupled[['a']])

    def test_three_dimensional(self, fast_config):
        from multivar.exceptions import InputShapeError

        with pytest.raises(InputShapeError):
            _model(fast_config).forecast(np.zeros((4, 3, 2)))

    def test_bad_worker_count(self, fast_config):
        from multivar.exceptions import InputShapeError

        with pytest.raises(InputShapeError):
            _model(fast_config, n_workers=0)

    def test_bad_backend(self, fast_config):
        from multivar.exceptions import ConfigurationError

        with pytest.raises(ConfigurationError):
            _model(fast_config, backend='gpu')

    def test_bad_direction(self, fast_config):
        from multivar.exceptions import ConfigurationError

        with pytest.raises(ConfigurationError):
            _model(fast_config, objective='sideways')


class TestStageFailures:
    def test_stacker_failure_aborts(self, coupled, fast_config):
        from multivar.exceptions import ForecastStageError

        baseline = threading.active_count()
        model = _model(fast_config, n_workers=2, backend='thread',
                       stacker=_FailingStacker())
        with pytest.raises(ForecastStageError) as info:
            model.forecast(coupled)

        assert info.value.stage == 'multivariate'
        assert info.value.item == 'a'
        assert isinstance(info.value.__cause__, ValueError)
        assert threading.active_count() == baseline

    def test_univariate_failure_releases_pool(self, coupled, fast_config):
        from multivar.exceptions import ForecastStageError

        class _Exploding:
            def detect(self, series, modulo=0):
                raise RuntimeError("no seasonality today")

        baseline = threading.active_count()
        model = _model(fast_config, n_workers=3, backend='thread', detector=_Exploding())
        with pytest.raises(ForecastStageError) as info:
            model.forecast(coupled)

        assert info.value.stage == 'univariate'
        assert info.value.to_dict()['original_type'] == 'RuntimeError'
        assert threading.active_count() == baseline

    def test_combine_shape_mismatch(self):
        from multivar.exceptions import ForecastStageError
        from multivar.var import combine_forecasts

        with pytest.raises(ForecastStageError) as info:
            combine_forecasts(pd.DataFrame(np.zeros((3, 2))), pd.DataFrame(np.zeros((3, 3))))
        assert info.value.stage == 'combine'


# ---------------------------------------------------------------------------
# Output index
# ---------------------------------------------------------------------------

class TestFutureIndex:
    def test_monthly_dates(self):
        from multivar.var import future_index

        idx = pd.DatetimeIndex(list(pd.date_range('2020-01-01', periods=24, freq='MS')))
        assert idx.freq is None
        out = future_index(idx, 3)
        assert isinstance(out, pd.DatetimeIndex)
        assert list(out) == [pd.Timestamp('2022-01-01'), pd.Timestamp('2022-02-01'),
                             pd.Timestamp('2022-03-01')]

    def test_range_index_step(self):
        from multivar.var import future_index

        out = future_index(pd.RangeIndex(10, 30, 2), 3)
        assert list(out) == [30, 32, 34]

    def test_other_index(self):
        from multivar.var import future_index

        out = future_index(pd.Index(list('abcde')), 2)
        assert list(out) == [5, 6]

    def test_dated_frame(self, coupled, fast_config):
        dated = coupled.set_index(pd.date_range('2015-01-01', periods=60, freq='D'))
        result = _model(fast_config).forecast(dated)
        assert result.ensemble.index[0] == pd.Timestamp('2015-03-02')
