"""
Reference Regressor Construction

Builds the time-lagged regressor vector shared by the LMS and RLS filter
banks. For a reference matrix with R channels and a filter order F, the
regressor at time index n is the concatenation of R blocks:

    x[n] = [ r_0[n], r_0[n-1], ..., r_0[n-F+1],
             r_1[n], r_1[n-1], ..., r_1[n-F+1],
             ...
             r_{R-1}[n], ..., r_{R-1}[n-F+1] ]

Each block is ordered most-recent-first, so weight coefficient ``w[r*F + k]``
multiplies reference r delayed by k samples. Training and replay must use
this same convention; ``pack_weights`` and ``unpack_weights`` convert between
the flat layout and the ``(filter_order, n_refs)`` layout of the weight tensor.
"""

from __future__ import annotations

import numpy as np

from magcancel.validation.input_validators import check_filter_order


def build_regressor(references: np.ndarray, filter_order: int, n: int) -> np.ndarray:
    """
    Build the regressor vector at 0-based time index n.

    Parameters
    ----------
    references : np.ndarray
        Reference matrix, shape (n_refs, n_samples).
    filter_order : int
        Number of lagged samples per reference channel.
    n : int
        Time index, ``filter_order - 1 <= n < n_samples``.

    Returns
    -------
    np.ndarray
        Regressor of shape (filter_order * n_refs,).
    """
    # Reversed slice gives r[n], r[n-1], ..., r[n-F+1] for every row at once
    start = n - filter_order + 1
    window = references[:, n::-1] if start == 0 else references[:, n:start - 1:-1]
    return window.reshape(-1)


def pack_weights(w: np.ndarray, filter_order: int, n_refs: int) -> np.ndarray:
    """Reshape a flat weight vector into its (filter_order, n_refs) block."""
    return np.asarray(w).reshape(n_refs, filter_order).T


def unpack_weights(block: np.ndarray) -> np.ndarray:
    """Flatten a (filter_order, n_refs) weight block into regressor order."""
    return np.asarray(block).T.reshape(-1)


class ReferenceRegressorBuilder:
    """
    Regressor factory bound to one reference matrix and filter order.

    Parameters
    ----------
    references : np.ndarray
        Reference matrix, shape (n_refs, n_samples). Held read-only.
    filter_order : int
        Lagged samples per reference channel. Must satisfy
        ``1 <= filter_order <= n_samples``.

    Raises
    ------
    InvalidFilterOrder
        If filter_order is not a positive integer or exceeds n_samples.
    """

    def __init__(self, references: np.ndarray, filter_order: int) -> None:
        references = np.asarray(references, dtype=np.float64)
        if references.ndim == 1:
            references = references[np.newaxis, :]
        self.filter_order = check_filter_order(filter_order, references.shape[1])
        self._references = references

    @property
    def n_refs(self) -> int:
        return self._references.shape[0]

    @property
    def n_samples(self) -> int:
        return self._references.shape[1]

    @property
    def n_coefficients(self) -> int:
        """Length of every regressor vector (filter_order * n_refs)."""
        return self.filter_order * self.n_refs

    @property
    def start_index(self) -> int:
        """First time index with a full lag history."""
        return self.filter_order - 1

    def build(self, n: int) -> np.ndarray:
        """Return the regressor at time index n."""
        if n < self.start_index or n >= self.n_samples:
            raise IndexError(
                f"Time index {n} outside valid range "
                f"[{self.start_index}, {self.n_samples - 1}]"
            )
        return build_regressor(self._references, self.filter_order, n)

    def _lag_view(self) -> np.ndarray:
        # view[r, k, j] = references[r, start_index + k - j]; no copy is made
        windows = np.lib.stride_tricks.sliding_window_view(
            self._references, self.filter_order, axis=1
        )
        return windows[:, :, ::-1]

    def iter_regressors(self):
        """
        Yield the regressor for every valid time index, in time order.

        Only one regressor of length ``n_coefficients`` exists at a time, so
        memory does not grow with the recording length. Row k belongs to time
        index ``start_index + k`` and equals ``build(start_index + k)``.
        """
        view = self._lag_view()
        for k in range(view.shape[1]):
            yield np.ascontiguousarray(view[:, k, :]).reshape(-1)

    def iter_blocks(self, block_size: int = 4096):
        """
        Yield ``(first_index, matrix)`` pairs covering every valid time index.

        Each matrix holds at most ``block_size`` consecutive regressors as
        rows, so a replay over a long recording needs bounded extra memory.
        """
        if block_size < 1:
            raise ValueError(f"block_size must be positive, got {block_size}")
        view = self._lag_view()
        n_rows = view.shape[1]
        for begin in range(0, n_rows, block_size):
            block = view[:, begin:begin + block_size, :]
            matrix = np.ascontiguousarray(block.transpose(1, 0, 2)).reshape(
                block.shape[1], self.n_coefficients
            )
            yield self.start_index + begin, matrix

    def build_all(self) -> np.ndarray:
        """
        Stack every regressor into one matrix.

        Memory is O(n_samples * n_coefficients); the filter banks use
        ``iter_regressors`` instead.

        Returns
        -------
        np.ndarray
            Shape (n_samples - filter_order + 1, n_coefficients); row k is the
            regressor at time index ``start_index + k``.
        """
        _, matrix = next(self.iter_blocks(self.n_samples))
        return matrix

    def __iter__(self):
        for offset, x in enumerate(self.iter_regressors()):
            yield self.start_index + offset, x
