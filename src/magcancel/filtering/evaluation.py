"""
Noise Reduction Evaluation

Compares per-channel mean-square power before and after filtering:

    power = mean(x ** 2)
    reduction_pct = 100 * (1 - power_after / power_before)

Positive percentages mean the filter removed power. Negative percentages
(filtering increased power) are reported as-is and flagged; callers decide
how to react. A channel with zero power before filtering reports 0 %. A
channel whose power is NaN or infinite on either side (typically a diverged
filter) reports NaN and is flagged separately.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np

from magcancel.errors import DimensionMismatch
from magcancel.validation.input_validators import as_matrix

logger = logging.getLogger(__name__)


@dataclass
class ReductionReport:
    """Per-channel noise-reduction statistics.

    Attributes
    ----------
    reduction_pct : np.ndarray
        Noise reduction per channel in percent, shape (n_channels,).
    power_before : np.ndarray
        Mean-square power before filtering, shape (n_channels,).
    power_after : np.ndarray
        Mean-square power after filtering, shape (n_channels,).
    zero_power_channels : list[int]
        Channels whose power before filtering was zero (reported as 0 %).
    negative_channels : list[int]
        Channels where filtering increased power.
    non_finite_channels : list[int]
        Channels whose power before or after is NaN or infinite.
    warnings : list[str]
        Human-readable descriptions of the flags above.
    """

    reduction_pct: np.ndarray
    power_before: np.ndarray
    power_after: np.ndarray
    zero_power_channels: list[int] = field(default_factory=list)
    negative_channels: list[int] = field(default_factory=list)
    non_finite_channels: list[int] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def n_channels(self) -> int:
        return len(self.reduction_pct)

    @property
    def mean_reduction_pct(self) -> float:
        """Average reduction over channels; NaN if any channel is non-finite."""
        return float(np.mean(self.reduction_pct)) if self.n_channels else 0.0

    def as_tuple(self) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """(reduction_pct, power_before, power_after)."""
        return self.reduction_pct, self.power_before, self.power_after


def evaluate_noise_reduction(before: np.ndarray, after: np.ndarray) -> ReductionReport:
    """
    Compute per-channel noise reduction achieved by filtering.

    Parameters
    ----------
    before : np.ndarray
        Data before filtering, shape (n_channels, n_samples).
    after : np.ndarray
        Data after filtering, same shape.

    Returns
    -------
    ReductionReport

    Raises
    ------
    DimensionMismatch
        If channel or sample counts differ.

    Examples
    --------
    >>> report = evaluate_noise_reduction(raw, result.filtered)
    >>> print(f"Mean reduction: {report.mean_reduction_pct:.2f}%")
    """
    before = as_matrix(before, "before")
    after = as_matrix(after, "after")

    if before.shape[0] != after.shape[0]:
        raise DimensionMismatch(
            "n_channels",
            (before.shape[0], after.shape[0]),
            f"Number of channels must match: before={before.shape[0]}, after={after.shape[0]}",
        )
    if before.shape[1] != after.shape[1]:
        raise DimensionMismatch(
            "n_samples",
            (before.shape[1], after.shape[1]),
            f"Number of samples must match: before={before.shape[1]}, after={after.shape[1]}",
        )

    with np.errstate(over="ignore", invalid="ignore"):
        power_before = np.mean(before**2, axis=1)
        power_after = np.mean(after**2, axis=1)

    finite = np.isfinite(power_before) & np.isfinite(power_after)
    valid = finite & (power_before > 0)

    reduction_pct = np.zeros(before.shape[0], dtype=np.float64)
    reduction_pct[valid] = 100.0 * (1.0 - power_after[valid] / power_before[valid])
    reduction_pct[~finite] = np.nan

    warnings = []
    non_finite = [int(ch) for ch in np.flatnonzero(~finite)]
    if non_finite:
        message = f"Channel(s) {non_finite} have non-finite power (filter diverged?)"
        warnings.append(message)
        logger.warning(message)

    zero_power = [int(ch) for ch in np.flatnonzero(finite & (power_before == 0))]
    for ch in zero_power:
        message = f"Channel {ch} has zero power before filtering"
        warnings.append(message)
        logger.warning(message)

    negative = [int(ch) for ch in np.flatnonzero(valid & (reduction_pct < 0))]
    if negative:
        message = (
            f"{len(negative)} channel(s) show negative noise reduction "
            f"(power increased): {negative}"
        )
        warnings.append(message)
        logger.warning(message)

    return ReductionReport(
        reduction_pct=reduction_pct,
        power_before=power_before,
        power_after=power_after,
        zero_power_channels=zero_power,
        negative_channels=negative,
        non_finite_channels=non_finite,
        warnings=warnings,
    )


def reference_correlation(data: np.ndarray, references: np.ndarray) -> np.ndarray:
    """
    Largest absolute correlation between each channel and any reference.

    High values before filtering and low values after indicate that the
    reference-correlated interference was removed.

    Parameters
    ----------
    data : np.ndarray
        Channel matrix, shape (n_channels, n_samples).
    references : np.ndarray
        Reference matrix, shape (n_references, n_samples).

    Returns
    -------
    np.ndarray
        Shape (n_channels,). Constant signals count as zero correlation.
    """
    data = as_matrix(data, "data")
    references = as_matrix(references, "references")
    if data.shape[1] != references.shape[1]:
        raise DimensionMismatch(
            "n_samples",
            (data.shape[1], references.shape[1]),
            f"Data has {data.shape[1]} samples but references have {references.shape[1]}",
        )

    def standardize(x: np.ndarray) -> np.ndarray:
        centered = x - x.mean(axis=1, keepdims=True)
        norm = np.linalg.norm(centered, axis=1, keepdims=True)
        return np.divide(centered, norm, out=np.zeros_like(centered), where=norm > 0)

    corr = standardize(data) @ standardize(references).T
    return np.max(np.abs(corr), axis=1)


def samples_to_threshold(
    filtered: np.ndarray,
    truth: np.ndarray,
    threshold: float = 0.9,
    window: int = 480,
    start: int = 0,
) -> int | None:
    """
    First sample at which filtered output tracks a known clean signal.

    Slides a non-overlapping window over ``filtered[start:]`` and returns the
    end index of the first window whose Pearson correlation with ``truth``
    reaches ``threshold``. Used to compare convergence speed between
    algorithms on synthetic data.

    Parameters
    ----------
    filtered : np.ndarray
        One filtered channel, shape (n_samples,).
    truth : np.ndarray
        The clean signal for that channel, shape (n_samples,).
    threshold : float
        Correlation to reach. Default 0.9.
    window : int
        Window length in samples. Default 480 (0.1 s at 4.8 kHz).
    start : int
        First index to consider (e.g. the filter's start_index).

    Returns
    -------
    int or None
        Sample index (exclusive end of the window), or None if never reached.
    """
    filtered = np.asarray(filtered, dtype=np.float64).ravel()
    truth = np.asarray(truth, dtype=np.float64).ravel()
    if filtered.shape != truth.shape:
        raise DimensionMismatch(
            "n_samples",
            (filtered.size, truth.size),
            f"filtered has {filtered.size} samples but truth has {truth.size}",
        )
    if window < 2:
        raise ValueError(f"window must be at least 2 samples, got {window}")

    for begin in range(start, filtered.size - window + 1, window):
        seg_f = filtered[begin:begin + window]
        seg_t = truth[begin:begin + window]
        if np.std(seg_f) == 0 or np.std(seg_t) == 0:
            continue
        r = np.corrcoef(seg_f, seg_t)[0, 1]
        if r >= threshold:
            return begin + window
    return None
