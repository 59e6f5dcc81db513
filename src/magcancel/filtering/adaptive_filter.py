"""
Adaptive Filtering Module - Multi-Reference Interference Cancellation

Implements LMS and RLS adaptive filter banks that cancel environmental
interference from multichannel magnetic-sensor recordings, using a set of
reference sensors that see the interference but not the signal of interest.

Filter Model:
    e[n] = d[n] - w^T @ x[n]

    where:
    - d[n]: Raw channel sample (signal + interference)
    - x[n]: Regressor of lagged reference samples (see regressor.py)
    - w: Adaptive filter weights, one vector per channel
    - e[n]: Cleaned output (error signal)

Each channel is filtered independently with its own private state. Within a
channel the samples are processed strictly in time order. Output samples
before index ``filter_order - 1`` have no full lag history; they are left at
zero rather than copied from the raw input.

References:
    - Haykin, S. (2002). Adaptive Filter Theory. Prentice Hall.
    - Widrow, B., & Stearns, S. (1985). Adaptive Signal Processing.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Iterable, Union

import numpy as np

from magcancel.config import load_config
from magcancel.constants import (
    DEFAULT_ALGORITHM,
    DEFAULT_DELTA,
    DEFAULT_FILTER_ORDER,
    DEFAULT_LAMBDA,
    DEFAULT_MU,
)
from magcancel.errors import ConfigError, DimensionMismatch
from magcancel.filtering.regressor import (
    ReferenceRegressorBuilder,
    pack_weights,
    unpack_weights,
)
from magcancel.validation.input_validators import (
    as_matrix,
    check_algorithm,
    check_delta,
    check_filter_order,
    check_forgetting_factor,
    check_resymmetrize_every,
    check_signal_shapes,
    check_step_size,
    validate_config_file,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Records
# =============================================================================


@dataclass(frozen=True)
class LMSConfig:
    """
    LMS filter-bank parameters, validated on construction.

    Parameters
    ----------
    filter_order : int
        Lagged samples per reference channel. Default is 10.
    mu : float
        Step size, must be > 0. Default is 0.01.
        Stability is the caller's responsibility; roughly
        mu < 2 / (filter_order * total reference power).
    """

    filter_order: int = DEFAULT_FILTER_ORDER
    mu: float = DEFAULT_MU

    def __post_init__(self) -> None:
        object.__setattr__(self, "filter_order", check_filter_order(self.filter_order))
        object.__setattr__(self, "mu", check_step_size(self.mu))


@dataclass(frozen=True)
class RLSConfig:
    """
    RLS filter-bank parameters, validated on construction.

    Parameters
    ----------
    filter_order : int
        Lagged samples per reference channel. Default is 10.
    lambda_ : float
        Forgetting factor in [0.99, 1.0]. Default is 0.995.
        lambda = 1: infinite memory (stationary interference)
        lambda -> 0.99: faster tracking, noisier estimate
    delta : float
        Initialisation constant, P[0] = I / delta. Must be > 0. Default is 1.0.
    resymmetrize_every : int or None
        If set to k, P is replaced by (P + P^T) / 2 after every k-th update.
        Default None keeps the plain recursion, whose symmetry can erode
        over very long recordings.
    """

    filter_order: int = DEFAULT_FILTER_ORDER
    lambda_: float = DEFAULT_LAMBDA
    delta: float = DEFAULT_DELTA
    resymmetrize_every: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "filter_order", check_filter_order(self.filter_order))
        object.__setattr__(self, "lambda_", check_forgetting_factor(self.lambda_))
        object.__setattr__(self, "delta", check_delta(self.delta))
        object.__setattr__(
            self, "resymmetrize_every", check_resymmetrize_every(self.resymmetrize_every)
        )


@dataclass(frozen=True)
class AdaptiveFilterConfig:
    """
    Top-level configuration: which algorithm runs, and its parameters.

    Mirrors the ``adaptive_filter`` section of the YAML configuration, where
    one flat mapping holds the options of both algorithms.
    """

    algorithm: str = DEFAULT_ALGORITHM
    lms: LMSConfig = field(default_factory=LMSConfig)
    rls: RLSConfig = field(default_factory=RLSConfig)

    def __post_init__(self) -> None:
        object.__setattr__(self, "algorithm", check_algorithm(self.algorithm))

    @property
    def active(self) -> LMSConfig | RLSConfig:
        """Parameters of the selected algorithm."""
        return self.lms if self.algorithm == "LMS" else self.rls

    @classmethod
    def from_dict(cls, section: dict[str, Any]) -> "AdaptiveFilterConfig":
        """
        Build from a flat ``adaptive_filter`` mapping.

        Recognised keys: algorithm, filter_order, mu, lambda (or lambda_),
        delta, resymmetrize_every. Missing keys take their defaults. Both
        algorithms are built and validated, so switching ``algorithm`` keeps
        the other algorithm's values.
        """
        if section is None:
            section = {}
        if not isinstance(section, dict):
            raise ConfigError(
                f"adaptive_filter section must be a mapping, got {type(section).__name__}"
            )
        algorithm = check_algorithm(section.get("algorithm", DEFAULT_ALGORITHM))
        filter_order = section.get("filter_order", DEFAULT_FILTER_ORDER)

        lms = LMSConfig(filter_order=filter_order, mu=section.get("mu", DEFAULT_MU))
        rls = RLSConfig(
            filter_order=filter_order,
            lambda_=section.get("lambda", section.get("lambda_", DEFAULT_LAMBDA)),
            delta=section.get("delta", DEFAULT_DELTA),
            resymmetrize_every=section.get("resymmetrize_every"),
        )
        return cls(algorithm=algorithm, lms=lms, rls=rls)

    def to_dict(self) -> dict[str, Any]:
        """Flat mapping in the layout of the YAML ``adaptive_filter`` section."""
        return {
            "algorithm": self.algorithm,
            "filter_order": self.active.filter_order,
            "mu": self.lms.mu,
            "lambda": self.rls.lambda_,
            "delta": self.rls.delta,
            "resymmetrize_every": self.rls.resymmetrize_every,
        }

    @classmethod
    def from_config(
        cls,
        config_path: str | Path | None = None,
        strict: bool = False,
    ) -> "AdaptiveFilterConfig":
        """
        Create from the ``adaptive_filter`` section of a YAML config file.

        With ``strict=False`` a missing or unreadable file falls back to the
        defaults. With ``strict=True`` any issue found by
        ``validate_config_file`` raises ConfigError.
        """
        if strict:
            result = validate_config_file(config_path, strict=True)
            if not result.is_valid:
                raise ConfigError("; ".join(result.errors + result.warnings))

        config = load_config(config_path)
        return cls.from_dict(config.get("adaptive_filter", {}))


# =============================================================================
# Per-Channel Filters
# =============================================================================


@dataclass(frozen=True)
class LMSState:
    """LMS state of one channel: the weight vector."""

    w: np.ndarray


@dataclass(frozen=True)
class RLSState:
    """RLS state of one channel.

    Attributes
    ----------
    w : np.ndarray
        Weight vector, shape (n_coefficients,).
    P : np.ndarray
        Inverse correlation matrix estimate, shape (n_coefficients, n_coefficients).
    n_updates : int
        Number of updates applied so far.
    """

    w: np.ndarray
    P: np.ndarray
    n_updates: int = 0


class LMSChannelFilter:
    """
    Least Mean Squares (LMS) adaptive filter for one channel.

    Minimises the mean squared error with stochastic gradient descent on the
    instantaneous error.

    Update rule:
        e[n] = d[n] - w[n]^T @ x[n]
        w[n+1] = w[n] + mu * e[n] * x[n]

    Notes
    -----
    Complexity: O(n_coefficients) per sample.
    Divergence for too-large mu is not detected.
    """

    def __init__(self, config: LMSConfig, n_coefficients: int) -> None:
        self.config = config
        self.n_coefficients = n_coefficients

    def initial_state(self) -> LMSState:
        return LMSState(w=np.zeros(self.n_coefficients, dtype=np.float64))

    def step(self, state: LMSState, x: np.ndarray, d: float) -> tuple[LMSState, float]:
        """
        Process one sample.

        Parameters
        ----------
        state : LMSState
            State before this sample. Not modified.
        x : np.ndarray
            Regressor at this time index.
        d : float
            Raw channel sample.

        Returns
        -------
        tuple[LMSState, float]
            New state and the residual e[n].
        """
        y_hat = state.w @ x
        e = d - y_hat
        return LMSState(w=state.w + self.config.mu * e * x), e

    def run(self, d: np.ndarray, regressors: Iterable[np.ndarray], start_index: int) -> tuple[np.ndarray, LMSState]:
        """Filter one channel; returns the output row and the final state."""
        return _run_channel(self, d, regressors, start_index)


class RLSChannelFilter:
    """
    Recursive Least Squares (RLS) adaptive filter for one channel.

    Minimises the exponentially weighted sum of squared errors. Converges
    faster than LMS at higher per-sample cost.

    Update rules:
        k[n] = P[n-1] @ x[n] / (lambda + x[n]^T @ P[n-1] @ x[n])
        e[n] = d[n] - w[n-1]^T @ x[n]
        w[n] = w[n-1] + k[n] * e[n]
        P[n] = (P[n-1] - k[n] @ x[n]^T @ P[n-1]) / lambda

    Notes
    -----
    Complexity: O(n_coefficients^2) per sample.
    Repeated division by lambda accumulates rounding error in P over long
    recordings; see RLSConfig.resymmetrize_every.
    """

    def __init__(self, config: RLSConfig, n_coefficients: int) -> None:
        self.config = config
        self.n_coefficients = n_coefficients

    def initial_state(self) -> RLSState:
        return RLSState(
            w=np.zeros(self.n_coefficients, dtype=np.float64),
            P=np.eye(self.n_coefficients, dtype=np.float64) / self.config.delta,
        )

    def step(self, state: RLSState, x: np.ndarray, d: float) -> tuple[RLSState, float]:
        """
        Process one sample.

        Parameters
        ----------
        state : RLSState
            State before this sample. Not modified.
        x : np.ndarray
            Regressor at this time index.
        d : float
            Raw channel sample.

        Returns
        -------
        tuple[RLSState, float]
            New state and the a priori residual e[n].
        """
        lambda_ = self.config.lambda_
        P = state.P

        # Gain vector
        Px = P @ x
        denominator = lambda_ + x @ Px
        k = Px / denominator

        # A priori error
        e = d - state.w @ x

        w = state.w + k * e
        P = (P - np.outer(k, x @ P)) / lambda_

        n_updates = state.n_updates + 1
        every = self.config.resymmetrize_every
        if every is not None and n_updates % every == 0:
            P = 0.5 * (P + P.T)

        return RLSState(w=w, P=P, n_updates=n_updates), e

    def run(self, d: np.ndarray, regressors: Iterable[np.ndarray], start_index: int) -> tuple[np.ndarray, RLSState]:
        """Filter one channel; returns the output row and the final state."""
        return _run_channel(self, d, regressors, start_index)


ChannelFilter = Union[LMSChannelFilter, RLSChannelFilter]


def _run_channel(
    filt: ChannelFilter,
    d: np.ndarray,
    regressors: Iterable[np.ndarray],
    start_index: int,
) -> tuple[np.ndarray, Any]:
    output = np.zeros_like(d)
    state = filt.initial_state()
    for offset, x in enumerate(regressors):
        n = start_index + offset
        state, output[n] = filt.step(state, x, d[n])
    return output, state


# =============================================================================
# Filter Banks
# =============================================================================


@dataclass
class FilterResult:
    """
    Output of one filter-bank run.

    Attributes
    ----------
    filtered : np.ndarray
        Residual after cancellation, shape (n_channels, n_samples). Samples
        before ``start_index`` are zero.
    weights : np.ndarray
        Final weights, shape (filter_order, n_references, n_channels).
        ``weights[k, r, c]`` multiplies reference r delayed by k samples.
    error_signal : np.ndarray
        Same values as ``filtered`` (separate array).
    algorithm : str
        "LMS" or "RLS".
    filter_order : int
        Lagged samples per reference channel.
    n_references : int
        Number of reference channels.
    start_index : int
        First updated sample index (filter_order - 1).
    elapsed_s : float
        Wall time of the run.
    """

    filtered: np.ndarray
    weights: np.ndarray
    error_signal: np.ndarray
    algorithm: str
    filter_order: int
    n_references: int
    start_index: int
    elapsed_s: float = 0.0

    @property
    def n_channels(self) -> int:
        return self.filtered.shape[0]

    @property
    def n_samples(self) -> int:
        return self.filtered.shape[1]


class _FilterBank:
    """Shared driver: validation, regressors, per-channel fan-out, assembly."""

    algorithm = ""

    def __init__(self, config: LMSConfig | RLSConfig, n_jobs: int = 1) -> None:
        if isinstance(n_jobs, bool) or not isinstance(n_jobs, (int, np.integer)) or n_jobs < 1:
            raise ValueError(f"n_jobs must be a positive int, got {n_jobs!r}")
        self.config = config
        self.n_jobs = int(n_jobs)

    def _channel_filter(self, n_coefficients: int) -> ChannelFilter:
        raise NotImplementedError

    def filter(self, channels: np.ndarray, references: np.ndarray) -> FilterResult:
        """
        Cancel reference-correlated interference from every channel.

        Parameters
        ----------
        channels : np.ndarray
            Raw channel matrix, shape (n_channels, n_samples). Not modified.
        references : np.ndarray
            Reference matrix, shape (n_references, n_samples).

        Returns
        -------
        FilterResult

        Raises
        ------
        DimensionMismatch
            If channel and reference sample counts differ.
        InvalidFilterOrder
            If filter_order exceeds the sample count.
        """
        channels, references = check_signal_shapes(channels, references)
        builder = ReferenceRegressorBuilder(references, self.config.filter_order)

        n_channels, n_samples = channels.shape
        filter_order = builder.filter_order
        n_refs = builder.n_refs

        logger.info(
            "%s: filtering %d channels x %d samples with %d references (order %d)",
            self.algorithm, n_channels, n_samples, n_refs, filter_order,
        )
        t_start = time.perf_counter()

        filt = self._channel_filter(builder.n_coefficients)

        # Each channel walks its own lazy regressor stream over the shared references
        def run_channel(ch: int) -> tuple[np.ndarray, Any]:
            return filt.run(channels[ch], builder.iter_regressors(), builder.start_index)

        if self.n_jobs > 1 and n_channels > 1:
            with ThreadPoolExecutor(max_workers=self.n_jobs) as executor:
                outputs = list(executor.map(run_channel, range(n_channels)))
        else:
            outputs = [run_channel(ch) for ch in range(n_channels)]

        filtered = np.zeros_like(channels)
        weights = np.zeros((filter_order, n_refs, n_channels), dtype=np.float64)
        for ch, (row, state) in enumerate(outputs):
            filtered[ch] = row
            weights[:, :, ch] = pack_weights(state.w, filter_order, n_refs)

        elapsed = time.perf_counter() - t_start
        logger.info("%s: done in %.3f s", self.algorithm, elapsed)

        return FilterResult(
            filtered=filtered,
            weights=weights,
            error_signal=filtered.copy(),
            algorithm=self.algorithm,
            filter_order=filter_order,
            n_references=n_refs,
            start_index=builder.start_index,
            elapsed_s=elapsed,
        )


class LMSFilterBank(_FilterBank):
    """
    Per-channel LMS interference cancellation.

    Parameters
    ----------
    config : LMSConfig, optional
        Step size and filter order. Defaults to LMSConfig().
    n_jobs : int
        Worker threads for the per-channel fan-out. Default 1 (serial).
        Results match the serial run exactly, but the per-sample update
        loop holds the GIL, so extra threads give little speedup.

    Examples
    --------
    >>> bank = LMSFilterBank(LMSConfig(filter_order=10, mu=0.01))
    >>> result = bank.filter(channels, references)
    >>> result.weights.shape
    (10, 3, 4)
    """

    algorithm = "LMS"

    def __init__(self, config: LMSConfig | None = None, n_jobs: int = 1) -> None:
        super().__init__(config if config is not None else LMSConfig(), n_jobs)

    def _channel_filter(self, n_coefficients: int) -> LMSChannelFilter:
        return LMSChannelFilter(self.config, n_coefficients)


class RLSFilterBank(_FilterBank):
    """
    Per-channel RLS interference cancellation.

    Parameters
    ----------
    config : RLSConfig, optional
        Forgetting factor, delta and filter order. Defaults to RLSConfig().
    n_jobs : int
        Worker threads for the per-channel fan-out. Default 1 (serial).
        Results match the serial run exactly, but the per-sample update
        loop holds the GIL, so extra threads give little speedup.

    Examples
    --------
    >>> bank = RLSFilterBank(RLSConfig(filter_order=10, lambda_=0.995, delta=1.0))
    >>> result = bank.filter(channels, references)
    """

    algorithm = "RLS"

    def __init__(self, config: RLSConfig | None = None, n_jobs: int = 1) -> None:
        super().__init__(config if config is not None else RLSConfig(), n_jobs)

    def _channel_filter(self, n_coefficients: int) -> RLSChannelFilter:
        return RLSChannelFilter(self.config, n_coefficients)


# =============================================================================
# Entry Points
# =============================================================================


def make_filter_bank(
    config: AdaptiveFilterConfig | dict[str, Any] | None = None,
    n_jobs: int = 1,
) -> LMSFilterBank | RLSFilterBank:
    """Return the filter bank selected by ``config.algorithm``."""
    if config is None:
        config = AdaptiveFilterConfig()
    elif isinstance(config, dict):
        config = AdaptiveFilterConfig.from_dict(config)

    if config.algorithm == "LMS":
        return LMSFilterBank(config.lms, n_jobs=n_jobs)
    return RLSFilterBank(config.rls, n_jobs=n_jobs)


def cancel_interference(
    channels: np.ndarray,
    references: np.ndarray,
    config: AdaptiveFilterConfig | dict[str, Any] | None = None,
    n_jobs: int = 1,
) -> FilterResult:
    """
    Apply adaptive interference cancellation to a multichannel recording.

    Parameters
    ----------
    channels : np.ndarray
        Raw recording, shape (n_channels, n_samples).
    references : np.ndarray
        Reference-sensor recording, shape (n_references, n_samples).
    config : AdaptiveFilterConfig or dict, optional
        Algorithm selection and parameters. A dict is read like the YAML
        ``adaptive_filter`` section. Default is RLS with default parameters.
    n_jobs : int
        Worker threads for the per-channel fan-out. Default 1. Output is
        identical to the serial run; expect little speedup (GIL-bound).

    Returns
    -------
    FilterResult

    Examples
    --------
    >>> result = cancel_interference(channels, refs, {"algorithm": "LMS", "mu": 0.005})
    >>> report = evaluate_noise_reduction(channels, result.filtered)
    """
    return make_filter_bank(config, n_jobs=n_jobs).filter(channels, references)


def predict_interference(references: np.ndarray, weights: np.ndarray) -> np.ndarray:
    """
    Replay a fixed weight tensor over a reference matrix.

    Uses the same regressor convention as training, so ``weights[k, r, c]``
    multiplies reference r delayed by k samples for channel c.

    Parameters
    ----------
    references : np.ndarray
        Reference matrix, shape (n_references, n_samples).
    weights : np.ndarray
        Weight tensor, shape (filter_order, n_references, n_channels).

    Returns
    -------
    np.ndarray
        Predicted interference, shape (n_channels, n_samples). Samples before
        index filter_order - 1 are zero.
    """
    references = as_matrix(references, "references")
    weights = np.asarray(weights, dtype=np.float64)
    if weights.ndim == 2:
        weights = weights[:, :, np.newaxis]
    if weights.ndim != 3:
        raise DimensionMismatch(
            "weights", weights.shape,
            f"weights must have shape (filter_order, n_references, n_channels), got {weights.shape}",
        )

    filter_order, n_refs, n_channels = weights.shape
    if n_refs != references.shape[0]:
        raise DimensionMismatch(
            "n_references",
            (n_refs, references.shape[0]),
            f"Weight tensor expects {n_refs} references, got {references.shape[0]}",
        )

    builder = ReferenceRegressorBuilder(references, filter_order)
    flat = np.stack([unpack_weights(weights[:, :, ch]) for ch in range(n_channels)])

    prediction = np.zeros((n_channels, builder.n_samples), dtype=np.float64)
    for first, block in builder.iter_blocks():
        prediction[:, first:first + block.shape[0]] = flat @ block.T
    return prediction


def config_summary(config: AdaptiveFilterConfig) -> dict[str, Any]:
    """Return the active parameters as a plain dict (for reports and logs)."""
    summary = {"algorithm": config.algorithm}
    summary.update(asdict(config.active))
    return summary
