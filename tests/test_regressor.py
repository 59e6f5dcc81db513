"""
Reference Regressor Unit Tests

Validates the lag/ordering convention shared by the LMS and RLS filter
banks and the weight packing that depends on it.
"""

from __future__ import annotations

import numpy as np
import pytest

from magcancel.errors import InvalidFilterOrder
from magcancel.filtering.regressor import (
    ReferenceRegressorBuilder,
    build_regressor,
    pack_weights,
    unpack_weights,
)


@pytest.fixture
def references():
    """Two reference channels: 0..9 and 10..19."""
    return np.arange(20, dtype=np.float64).reshape(2, 10)


class TestBuildRegressor:
    """Tests for single-index regressor construction."""

    def test_most_recent_first_per_channel(self, references):
        """Each reference block runs r[n], r[n-1], ..., r[n-F+1]."""
        x = build_regressor(references, filter_order=3, n=5)

        np.testing.assert_array_equal(x, [5, 4, 3, 15, 14, 13])

    def test_first_valid_index(self, references):
        """At n = F-1 the block reaches back to sample 0."""
        x = build_regressor(references, filter_order=3, n=2)

        np.testing.assert_array_equal(x, [2, 1, 0, 12, 11, 10])

    def test_last_index(self, references):
        """The final sample is reachable."""
        x = build_regressor(references, filter_order=4, n=9)

        np.testing.assert_array_equal(x, [9, 8, 7, 6, 19, 18, 17, 16])

    def test_length(self, references):
        """Regressor length is filter_order * n_refs."""
        assert build_regressor(references, filter_order=7, n=8).shape == (14,)


class TestReferenceRegressorBuilder:
    """Tests for the bound builder."""

    def test_properties(self, references):
        """Derived sizes follow the filter order and reference count."""
        builder = ReferenceRegressorBuilder(references, filter_order=4)

        assert builder.n_refs == 2
        assert builder.n_samples == 10
        assert builder.n_coefficients == 8
        assert builder.start_index == 3

    def test_build_all_matches_build(self, references):
        """Row k of build_all equals build(start_index + k)."""
        builder = ReferenceRegressorBuilder(references, filter_order=3)
        matrix = builder.build_all()

        assert matrix.shape == (8, 6)
        for k in range(matrix.shape[0]):
            np.testing.assert_array_equal(matrix[k], builder.build(builder.start_index + k))

    def test_build_all_random_references(self):
        """build_all agrees with build on arbitrary multi-reference data."""
        rng = np.random.default_rng(0)
        refs = rng.standard_normal((3, 50))
        builder = ReferenceRegressorBuilder(refs, filter_order=6)

        matrix = builder.build_all()

        for n in (5, 17, 49):
            np.testing.assert_array_equal(matrix[n - 5], builder.build(n))

    def test_iter_regressors_matches_build_all(self):
        """iter_regressors yields the rows of build_all, one at a time."""
        refs = np.random.default_rng(3).standard_normal((3, 40))
        builder = ReferenceRegressorBuilder(refs, filter_order=5)

        rows = list(builder.iter_regressors())

        assert len(rows) == 36
        np.testing.assert_array_equal(np.stack(rows), builder.build_all())

    def test_iter_regressors_is_restartable(self, references):
        """Each call starts a fresh stream, so channels can share one builder."""
        builder = ReferenceRegressorBuilder(references, filter_order=3)

        first = list(builder.iter_regressors())
        second = list(builder.iter_regressors())

        np.testing.assert_array_equal(np.stack(first), np.stack(second))

    @pytest.mark.parametrize("block_size", [1, 3, 8, 100])
    def test_iter_blocks_cover_every_row(self, references, block_size):
        """Blocks are contiguous, bounded by block_size and together equal build_all."""
        builder = ReferenceRegressorBuilder(references, filter_order=3)

        blocks = list(builder.iter_blocks(block_size))

        assert [first for first, _ in blocks] == list(range(2, 10, block_size))
        assert all(block.shape[0] <= block_size for _, block in blocks)
        np.testing.assert_array_equal(
            np.vstack([block for _, block in blocks]), builder.build_all()
        )

    def test_iter_blocks_rejects_zero_block_size(self, references):
        """A non-positive block size is rejected."""
        builder = ReferenceRegressorBuilder(references, filter_order=3)

        with pytest.raises(ValueError, match="block_size"):
            next(builder.iter_blocks(0))

    def test_iteration_covers_valid_range(self, references):
        """Iterating yields every valid index once, in time order."""
        builder = ReferenceRegressorBuilder(references, filter_order=3)

        indices = [n for n, _ in builder]

        assert indices == list(range(2, 10))

    def test_filter_order_equal_to_samples(self, references):
        """F == N gives exactly one regressor."""
        builder = ReferenceRegressorBuilder(references, filter_order=10)

        matrix = builder.build_all()

        assert matrix.shape == (1, 20)
        np.testing.assert_array_equal(matrix[0, :10], np.arange(9, -1, -1))

    def test_one_dimensional_reference(self):
        """A 1-D reference is treated as a single channel."""
        builder = ReferenceRegressorBuilder(np.arange(5.0), filter_order=2)

        assert builder.n_refs == 1
        np.testing.assert_array_equal(builder.build(4), [4, 3])

    def test_out_of_range_index(self, references):
        """Indices without a full lag history are rejected."""
        builder = ReferenceRegressorBuilder(references, filter_order=3)

        with pytest.raises(IndexError):
            builder.build(1)
        with pytest.raises(IndexError):
            builder.build(10)

    def test_filter_order_exceeds_samples(self, references):
        """filter_order > n_samples raises InvalidFilterOrder with the value."""
        with pytest.raises(InvalidFilterOrder, match="cannot exceed") as exc_info:
            ReferenceRegressorBuilder(references, filter_order=11)

        assert exc_info.value.parameter == "filter_order"
        assert exc_info.value.value == 11

    @pytest.mark.parametrize("order", [0, -2, 2.5])
    def test_invalid_filter_order(self, references, order):
        """Non-positive or non-integer orders are rejected."""
        with pytest.raises(InvalidFilterOrder):
            ReferenceRegressorBuilder(references, filter_order=order)


class TestWeightPacking:
    """Tests for flat <-> (filter_order, n_refs) weight layout."""

    def test_pack_layout(self):
        """weights[k, r] is the coefficient of reference r at lag k."""
        block = pack_weights(np.arange(6.0), filter_order=3, n_refs=2)

        np.testing.assert_array_equal(block, [[0, 3], [1, 4], [2, 5]])

    def test_unpack_inverts_pack(self):
        """unpack_weights restores regressor order."""
        w = np.random.default_rng(1).standard_normal(12)

        np.testing.assert_array_equal(unpack_weights(pack_weights(w, 4, 3)), w)

    def test_packed_weights_reproduce_prediction(self, references):
        """w @ x equals the lag-sum written with the packed block."""
        w = np.random.default_rng(2).standard_normal(6)
        block = pack_weights(w, filter_order=3, n_refs=2)
        n = 7

        direct = w @ build_regressor(references, 3, n)
        lag_sum = sum(
            block[k, r] * references[r, n - k] for k in range(3) for r in range(2)
        )

        assert direct == pytest.approx(lag_sum)
