"""
Test data containers: observations, datasets and the trajectory.
"""

import pytest
import numpy as np
import pandas as pd

from pyimplicit import (
    DataPoint,
    Dataset,
    DimensionMismatch,
    NumericalFailure,
    OnlineOutput,
    Size,
)


class TestDataPoint:
    """Single observation."""

    def test_immutable(self):
        """Test x cannot be modified after construction."""
        point = DataPoint([1.0, 2.0], 3)
        assert point.y == 3.0
        assert point.p == 2
        with pytest.raises(ValueError):
            point.x[0] = 5.0

    def test_copies_input(self):
        """Test later changes to the source array do not leak in."""
        x = np.array([1.0, 2.0])
        point = DataPoint(x, 0.0)
        x[0] = 9.0
        assert point.x[0] == 1.0


class TestDataset:
    """Design matrix and responses."""

    def setup_method(self):
        rng = np.random.default_rng(42)
        self.X = rng.normal(size=(30, 3))
        self.Y = rng.normal(size=30)

    def test_shape(self):
        """Test n, p and size."""
        data = Dataset(self.X, self.Y)
        assert data.n == 30
        assert data.p == 3
        assert data.size == Size(nsamples=30, p=3)
        assert len(data) == 30

    def test_column_response(self):
        """Test an n × 1 response is flattened."""
        data = Dataset(self.X, self.Y[:, np.newaxis])
        assert data.Y.shape == (30,)

    def test_covariance(self):
        """Test covariance of the design columns."""
        data = Dataset(self.X, self.Y)
        np.testing.assert_allclose(data.covariance(), np.cov(self.X, rowvar=False))
        assert data.covariance().shape == (3, 3)

    def test_iteration_order(self):
        """Test rows are yielded in order."""
        data = Dataset(self.X, self.Y)
        points = list(data)
        assert len(points) == 30
        np.testing.assert_array_equal(points[7].x, self.X[7])
        assert points[7].y == self.Y[7]

    def test_read_only(self):
        """Test the dataset cannot be mutated through its arrays."""
        data = Dataset(self.X, self.Y)
        with pytest.raises(ValueError):
            data.X[0, 0] = 1.0

    def test_row_mismatch(self):
        """Test X and Y must have the same number of rows."""
        with pytest.raises(DimensionMismatch):
            Dataset(self.X, self.Y[:-1])

    def test_from_frame(self):
        """Test construction from DataFrame columns."""
        df = pd.DataFrame({'a': [1.0, 2.0, 3.0], 'b': [0.0, 1.0, 0.0], 'y': [1.0, 0.0, 1.0]})
        data = Dataset.from_frame(df, y='y', X=['b', 'a'])
        assert data.feature_names == ['b', 'a']
        np.testing.assert_array_equal(data.X[:, 1], [1.0, 2.0, 3.0])
        np.testing.assert_array_equal(data.Y, [1.0, 0.0, 1.0])


class TestOnlineOutput:
    """Append-only trajectory."""

    def test_append_and_last(self):
        """Test columns accumulate in arrival order."""
        out = OnlineOutput(2, capacity=3)
        out.append([1.0, 2.0])
        out.append(np.array([3.0, 4.0]))
        assert out.n_estimates == 2
        assert out.estimates.shape == (2, 2)
        np.testing.assert_array_equal(out.estimates[:, 0], [1.0, 2.0])
        np.testing.assert_array_equal(out.last_estimate(), [3.0, 4.0])

    def test_grows_past_capacity(self):
        """Test appending beyond the pre-sized capacity."""
        out = OnlineOutput(1, capacity=2)
        for i in range(10):
            out.append([float(i)])
        assert out.n_estimates == 10
        np.testing.assert_array_equal(out.estimates[0], np.arange(10.0))

    def test_empty(self):
        """Test no last estimate before the first append."""
        out = OnlineOutput(3)
        assert out.estimates.shape == (3, 0)
        with pytest.raises(IndexError):
            out.last_estimate()

    def test_rejects_non_finite(self):
        """Test a NaN estimate leaves the trajectory unchanged."""
        out = OnlineOutput(2)
        out.append([1.0, 1.0])
        with pytest.raises(NumericalFailure):
            out.append([np.nan, 1.0])
        assert out.n_estimates == 1
        np.testing.assert_array_equal(out.last_estimate(), [1.0, 1.0])

    def test_rejects_wrong_length(self):
        """Test estimates must have length p."""
        with pytest.raises(DimensionMismatch):
            OnlineOutput(2).append([1.0, 2.0, 3.0])

    def test_estimates_read_only(self):
        """Test callers cannot rewrite history."""
        out = OnlineOutput(1)
        out.append([1.0])
        with pytest.raises(ValueError):
            out.estimates[0, 0] = 2.0

    def test_for_dataset(self):
        """Test pre-sizing from a dataset."""
        data = Dataset(np.ones((5, 4)), np.zeros(5))
        out = OnlineOutput.for_dataset(data)
        assert out.p == 4
        assert out.n_estimates == 0

    def test_to_frame(self):
        """Test DataFrame export."""
        out = OnlineOutput(2)
        out.append([1.0, 2.0])
        out.append([3.0, 4.0])
        df = out.to_frame(['a', 'b'])
        assert list(df.index) == ['a', 'b']
        assert df.shape == (2, 2)
        assert df.loc['b', 1] == 4.0
