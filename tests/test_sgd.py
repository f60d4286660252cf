"""
Test the streaming estimator end to end.
"""

import pytest
import numpy as np
import pandas as pd

from pyimplicit import (
    ConfigurationError,
    DataPoint,
    Dataset,
    DimensionMismatch,
    ExperimentState,
    ImplicitSGD,
    NumericalFailure,
    sgd,
)


def simulate(transfer, n, theta, seed=42):
    """Simulate a GLM with an intercept column."""
    rng = np.random.default_rng(seed)
    p = len(theta)
    X = np.column_stack([np.ones(n), rng.normal(scale=0.5, size=(n, p - 1))])
    eta = X @ theta
    if transfer == 'identity':
        y = eta + 0.1 * rng.normal(size=n)
    elif transfer == 'exp':
        y = rng.poisson(np.exp(eta)).astype(float)
    else:
        y = rng.binomial(1, 1.0 / (1.0 + np.exp(-eta))).astype(float)
    return X, y


class TestConfiguration:
    """Configuration errors fail at construction."""

    def test_unknown_transfer(self):
        """Test an unknown transfer is rejected."""
        with pytest.raises(ConfigurationError, match="probit"):
            ImplicitSGD(transfer='probit')

    def test_unknown_family(self):
        """Test an unknown family is rejected."""
        with pytest.raises(ConfigurationError):
            ImplicitSGD(family='gamma')

    def test_unknown_learning_rate(self):
        """Test an unknown schedule is rejected."""
        with pytest.raises(ConfigurationError):
            ImplicitSGD(lr='adam')

    def test_unknown_method(self):
        """Test an unknown update method is rejected."""
        with pytest.raises(ConfigurationError):
            ImplicitSGD(method='newton')

    def test_diagonal_parameters(self):
        """Test the diagonal schedule takes no parameters."""
        with pytest.raises(ConfigurationError):
            ImplicitSGD(lr='diagonal', lr_params={'gamma': 1.0})

    @pytest.mark.parametrize("params", [
        {'alpha': -2.0},
        {'c': -0.5},
        {'gamma': float('nan')},
        {'scale': -1.0},
        {'beta': 1.0},
    ])
    def test_invalid_uniform_parameters(self, params):
        """Test bad uniform-schedule parameters fail before any data is seen."""
        with pytest.raises(ConfigurationError):
            ImplicitSGD(lr_params=params)

    def test_unfitted(self):
        """Test coefficients are unavailable before fitting."""
        with pytest.raises(ConfigurationError):
            ImplicitSGD().coef_


class TestConvergence:
    """Recovering known coefficients from simulated data."""

    def test_gaussian_implicit(self):
        """Test implicit SGD on a linear model."""
        theta = np.array([1.0, 2.0, -1.5])
        X, y = simulate('identity', 3000, theta)
        model = ImplicitSGD().fit(X, y)
        np.testing.assert_allclose(model.coef_, theta, atol=0.2)

    def test_gaussian_explicit(self):
        """Test explicit SGD with a conservative rate."""
        theta = np.array([1.0, 2.0, -1.5])
        X, y = simulate('identity', 3000, theta)
        model = ImplicitSGD(method='explicit',
                            lr_params=dict(gamma=1.0, alpha=1.0, c=0.5, scale=0.2)).fit(X, y)
        np.testing.assert_allclose(model.coef_, theta, atol=0.2)

    def test_poisson_implicit(self):
        """Test implicit SGD with the exponential transfer."""
        theta = np.array([0.5, 0.8])
        X, y = simulate('exp', 5000, theta)
        model = ImplicitSGD(transfer='exp', family='poisson').fit(X, y)
        np.testing.assert_allclose(model.coef_, theta, atol=0.35)

    def test_logistic_implicit(self):
        """Test implicit SGD with the logistic transfer."""
        theta = np.array([0.5, -1.0])
        X, y = simulate('logistic', 8000, theta)
        model = ImplicitSGD(transfer='logistic', family='binomial').fit(X, y)
        np.testing.assert_allclose(model.coef_, theta, atol=0.5)

    def test_diagonal_rate(self):
        """Test the diagonal schedule on a linear model."""
        theta = np.array([1.0, -0.5])
        X, y = simulate('identity', 2000, theta)
        model = ImplicitSGD(lr='diagonal').fit(X, y)
        assert np.all(np.isfinite(model.coef_))
        assert model.trajectory_.n_estimates == 2000

    def test_large_rate_stays_stable(self):
        """Test implicit updates stay bounded where explicit ones blow up."""
        theta = np.array([1.0, 2.0, -1.5])
        X, y = simulate('identity', 500, theta)
        X = X * 10.0
        params = dict(gamma=5.0, alpha=1.0, c=0.6, scale=1.0)
        model = ImplicitSGD(lr_params=params).fit(X, y)
        assert np.all(np.abs(model.trajectory_.estimates) < 100)


class TestTrajectory:
    """Streaming invariants."""

    def test_one_column_per_observation(self):
        """Test n observations give n columns."""
        X, y = simulate('identity', 50, np.array([1.0, 1.0]))
        model = ImplicitSGD().fit(X, y)
        assert model.trajectory_.estimates.shape == (2, 50)
        assert model.result_.estimates.shape == (2, 50)
        np.testing.assert_array_equal(model.coef_, model.trajectory_.estimates[:, -1])

    def test_no_lookahead(self):
        """Test column k depends only on observations 0..k."""
        X, y = simulate('logistic', 60, np.array([0.2, 0.7]))
        full = ImplicitSGD(transfer='logistic').fit(X, y)
        prefix = ImplicitSGD(transfer='logistic').fit(X[:25], y[:25])
        np.testing.assert_array_equal(prefix.trajectory_.estimates,
                                      full.trajectory_.estimates[:, :25])

    def test_zero_scale_is_constant(self):
        """Test scale = 0 never moves the estimate."""
        X, y = simulate('identity', 40, np.array([1.0, -1.0]))
        theta0 = np.array([0.3, 0.3])
        model = ImplicitSGD(lr_params=dict(scale=0.0), theta0=theta0).fit(X, y)
        estimates = model.trajectory_.estimates
        assert estimates.shape == (2, 40)
        np.testing.assert_array_equal(estimates, np.tile(theta0[:, np.newaxis], (1, 40)))

    def test_partial_fit_matches_fit(self):
        """Test streaming rows one at a time reproduces fit()."""
        X, y = simulate('exp', 30, np.array([0.1, 0.4]))
        batch = ImplicitSGD(transfer='exp', family='poisson').fit(X, y)
        stream = ImplicitSGD(transfer='exp', family='poisson')
        for xi, yi in zip(X, y):
            stream.partial_fit(xi, yi)
        assert stream.t_ == 30
        np.testing.assert_allclose(stream.trajectory_.estimates, batch.trajectory_.estimates)

    def test_fit_finishes_run(self):
        """Test the experiment is done after fit()."""
        X, y = simulate('identity', 10, np.array([1.0, 1.0]))
        model = ImplicitSGD().fit(X, y)
        assert model.experiment_.state is ExperimentState.DONE

    def test_failure_keeps_last_valid_state(self):
        """Test an overflow aborts the run without a corrupted column."""
        model = ImplicitSGD(transfer='exp', family='poisson', theta0=np.array([800.0]))
        X = np.ones((3, 1))
        y = np.ones(3)
        with pytest.raises(NumericalFailure):
            model.fit(X, y)
        assert model.trajectory_.n_estimates == 0
        assert model.experiment_.state is ExperimentState.DONE

        failed = model.experiment_
        model.partial_fit([0.0], 1.0)
        assert model.experiment_ is not failed
        assert model.experiment_.state is ExperimentState.STREAMING
        assert model.trajectory_.n_estimates == 1
        assert model.t_ == 1
        np.testing.assert_array_equal(model.coef_, [800.0])

    def test_failure_ends_streaming_run(self):
        """Test a failed observation is never followed by more of the same run."""
        model = ImplicitSGD(transfer='exp', theta0=np.array([800.0]))
        model.partial_fit([0.0], 1.0)
        with pytest.raises(NumericalFailure):
            model.partial_fit([1.0], 1.0)
        assert model.experiment_.state is ExperimentState.DONE
        assert model.trajectory_.n_estimates == 1
        assert model.t_ == 1
        with pytest.raises(ConfigurationError):
            model.update(DataPoint([1.0], 1.0))

    def test_dimension_mismatch_ends_run(self):
        """Test a wrongly sized observation ends the run it was fed to."""
        model = ImplicitSGD()
        model.partial_fit([1.0], 1.0)
        with pytest.raises(DimensionMismatch):
            model.partial_fit([1.0, 2.0], 1.0)
        assert model.experiment_.state is ExperimentState.DONE
        assert model.trajectory_.n_estimates == 1


class TestResult:
    """Post-hoc summary."""

    def test_fields(self):
        """Test fitted values and deviance are consistent."""
        theta = np.array([0.3, 0.6])
        X, y = simulate('exp', 200, theta)
        model = ImplicitSGD(transfer='exp', family='poisson').fit(X, y)
        result = model.result_
        np.testing.assert_allclose(result.linear_predictors, X @ result.coef)
        np.testing.assert_allclose(result.fitted_values, np.exp(X @ result.coef))
        np.testing.assert_allclose(result.residuals, y - result.fitted_values)
        assert result.deviance == pytest.approx(
            model.experiment_.family.deviance(y, result.fitted_values))
        assert result.family == 'poisson'
        assert result.transfer == 'exp'
        assert result.method == 'implicit'
        assert result.n_iter == 200

    def test_predict(self):
        """Test predictions use the final estimate."""
        X, y = simulate('logistic', 100, np.array([0.0, 1.0]))
        model = ImplicitSGD(transfer='logistic', family='binomial').fit(X, y)
        pred = model.predict(X[:5])
        np.testing.assert_allclose(pred, 1.0 / (1.0 + np.exp(-(X[:5] @ model.coef_))))


class TestConvenience:
    """sgd() with arrays and DataFrames."""

    def test_dataframe(self):
        """Test named coefficients from column names."""
        X, y = simulate('identity', 500, np.array([1.0, 2.0]))
        df = pd.DataFrame({'const': X[:, 0], 'dose': X[:, 1], 'response': y})
        model = sgd(y='response', X=['const', 'dose'], data=df)
        assert list(model.coef.index) == ['const', 'dose']
        np.testing.assert_allclose(model.coef.values, [1.0, 2.0], atol=0.3)

    def test_arrays(self):
        """Test default names with array input."""
        X, y = simulate('identity', 100, np.array([1.0, 2.0]))
        model = sgd(y, X)
        assert list(model.coef.index) == ['x0', 'x1']

    def test_names_require_data(self):
        """Test column names need a DataFrame."""
        with pytest.raises(ValueError):
            sgd(y='response', X=['a'])

    def test_dataset_input(self):
        """Test fit() accepts a Dataset."""
        X, y = simulate('identity', 20, np.array([1.0, 2.0]))
        model = ImplicitSGD().fit(Dataset(X, y))
        assert model.trajectory_.n_estimates == 20
