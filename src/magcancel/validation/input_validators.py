"""
Input Validators for Adaptive Interference Cancellation

Provides two kinds of validation:
- Strict checks (``check_*``) that raise the typed errors from
  ``magcancel.errors``. The filter banks call these before touching a sample.
- Advisory validators (``validate_*``) that never raise and return result
  dataclasses with warnings, errors and recovery suggestions, for reviewing
  a configuration before a long run.

Also estimates the processing cost of each algorithm, since the RLS/LMS
choice is a trade-off between convergence speed and per-sample cost.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np
import yaml

from magcancel.config import DEFAULT_CONFIG_PATH, get_default_config
from magcancel.constants import (
    ESTIMATED_OPS_PER_SECOND,
    LAMBDA_RANGE,
    RECOMMENDED_FILTER_ORDER_RANGE,
    SUPPORTED_ALGORITHMS,
)
from magcancel.errors import (
    DimensionMismatch,
    InvalidDelta,
    InvalidFilterOrder,
    InvalidForgettingFactor,
    InvalidResymmetrizeInterval,
    InvalidStepSize,
    UnknownAlgorithm,
)


# =============================================================================
# Strict Checks
# =============================================================================


def check_filter_order(filter_order: Any, n_samples: int | None = None) -> int:
    """
    Validate filter_order and return it as int.

    Raises
    ------
    InvalidFilterOrder
        If filter_order is not a positive integer, or exceeds n_samples
        when n_samples is given.
    """
    is_integral = isinstance(filter_order, (int, np.integer)) or (
        isinstance(filter_order, (float, np.floating)) and float(filter_order).is_integer()
    )
    if isinstance(filter_order, bool) or not is_integral:
        raise InvalidFilterOrder(
            "filter_order",
            filter_order,
            f"Filter order must be an integer, got {filter_order!r}",
        )
    filter_order = int(filter_order)
    if filter_order < 1:
        raise InvalidFilterOrder(
            "filter_order",
            filter_order,
            f"Filter order must be positive, got {filter_order}",
        )
    if n_samples is not None and filter_order > n_samples:
        raise InvalidFilterOrder(
            "filter_order",
            filter_order,
            f"Filter order ({filter_order}) cannot exceed number of samples ({n_samples})",
        )
    return filter_order


def _as_float(value: Any, name: str, error_cls: type) -> float:
    if isinstance(value, bool):
        raise error_cls(name, value, f"{name} must be a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise error_cls(name, value, f"{name} must be a number, got {value!r}") from None


def check_step_size(mu: float) -> float:
    """Validate the LMS step size. Raises InvalidStepSize unless mu > 0."""
    value = _as_float(mu, "mu", InvalidStepSize)
    if not value > 0:
        raise InvalidStepSize(
            "mu", mu, f"Step size mu must be positive, got {value:.6f}"
        )
    return value


def check_forgetting_factor(lambda_: float) -> float:
    """Validate the RLS forgetting factor against LAMBDA_RANGE (inclusive)."""
    value = _as_float(lambda_, "lambda", InvalidForgettingFactor)
    low, high = LAMBDA_RANGE
    if not low <= value <= high:
        raise InvalidForgettingFactor(
            "lambda",
            lambda_,
            f"Forgetting factor lambda must be in range [{low}, {high}], "
            f"got {value:.6f}",
        )
    return value


def check_delta(delta: float) -> float:
    """Validate the RLS initialisation constant. Raises InvalidDelta unless delta > 0."""
    value = _as_float(delta, "delta", InvalidDelta)
    if not value > 0:
        raise InvalidDelta(
            "delta", delta, f"Delta must be positive, got {value:.6f}"
        )
    return value


def check_resymmetrize_every(every: Any) -> int | None:
    """Validate the RLS re-symmetrisation interval: None or a positive int."""
    if every is None:
        return None
    if isinstance(every, bool) or not isinstance(every, (int, np.integer)) or every < 1:
        raise InvalidResymmetrizeInterval(
            "resymmetrize_every",
            every,
            f"resymmetrize_every must be a positive int or None, got {every!r}",
        )
    return int(every)


def check_algorithm(algorithm: str) -> str:
    """Normalise the algorithm name to upper case. Raises UnknownAlgorithm."""
    name = str(algorithm).upper()
    if name not in SUPPORTED_ALGORITHMS:
        raise UnknownAlgorithm(
            "algorithm",
            algorithm,
            f"Unknown algorithm: {algorithm!r}. Use one of {', '.join(SUPPORTED_ALGORITHMS)}.",
        )
    return name


def as_matrix(data: np.ndarray, name: str) -> np.ndarray:
    """Return data as a 2-D float64 array; 1-D input becomes a single row."""
    array = np.asarray(data, dtype=np.float64)
    if array.ndim == 1:
        array = array[np.newaxis, :]
    if array.ndim != 2:
        raise DimensionMismatch(
            name, array.shape, f"{name} must be 1-D or 2-D, got shape {array.shape}"
        )
    return array


def check_signal_shapes(
    channels: np.ndarray,
    references: np.ndarray,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Coerce channel and reference matrices and check their sample counts.

    Parameters
    ----------
    channels : np.ndarray
        Channel matrix, shape (n_channels, n_samples) or (n_samples,).
    references : np.ndarray
        Reference matrix, shape (n_refs, n_samples) or (n_samples,).

    Returns
    -------
    tuple[np.ndarray, np.ndarray]
        2-D float64 views/copies of both inputs.

    Raises
    ------
    DimensionMismatch
        If the sample counts differ. ``value`` is the pair
        ``(channel_samples, reference_samples)``.
    """
    channels = as_matrix(channels, "channels")
    references = as_matrix(references, "references")

    n_samples = channels.shape[1]
    n_ref_samples = references.shape[1]
    if n_samples != n_ref_samples:
        raise DimensionMismatch(
            "n_samples",
            (n_samples, n_ref_samples),
            "Channel data and reference data must have the same number of samples: "
            f"channels={n_samples}, references={n_ref_samples}",
        )
    return channels, references


# =============================================================================
# Validation Result Types
# =============================================================================


@dataclass
class ParameterValidationResult:
    """Result of adaptive-filter parameter validation.

    Attributes
    ----------
    is_valid : bool
        True if every recognised option passes its strict check.
    algorithm : str
        Normalised algorithm name (or the raw value when unrecognised).
    parameters : dict
        The parameters that were checked.
    warnings : list[str]
        Non-fatal issues (e.g., filter order outside the usual range).
    errors : list[str]
        Fatal issues; the same conditions the filter banks raise on.
    recovery_suggestions : list[str]
        Actionable suggestions for fixing issues.
    """

    is_valid: bool
    algorithm: str
    parameters: dict[str, Any]
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    recovery_suggestions: list[str] = field(default_factory=list)


@dataclass
class CostEstimate:
    """Estimated processing cost of one filter-bank run.

    Attributes
    ----------
    algorithm : str
        "LMS" or "RLS".
    n_coefficients : int
        Regressor length (filter_order * n_refs).
    ops_per_sample : int
        Arithmetic operations per sample per channel.
    total_ops : float
        Operations for the whole recording.
    estimated_seconds : float
        Rough wall time at ESTIMATED_OPS_PER_SECOND.
    """

    algorithm: str
    n_coefficients: int
    ops_per_sample: int
    total_ops: float
    estimated_seconds: float


@dataclass
class ConfigValidationResult:
    """Outcome of reviewing one YAML config file.

    Attributes
    ----------
    is_valid : bool
        No errors (and, in strict mode, no warnings).
    config : dict | None
        The file contents, or the defaults where the file could not be used.
    file_path : Path | None
        The reviewed file, or None when it does not exist.
    warnings : list[str]
        Issues that fall back to defaults or flag unusual values.
    errors : list[str]
        Issues that make the file unusable as written.
    recovery_suggestions : list[str]
        How to fix the reported issues.
    """

    is_valid: bool
    config: dict[str, Any] | None
    file_path: Path | None
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    recovery_suggestions: list[str] = field(default_factory=list)


# =============================================================================
# Parameter Validation
# =============================================================================


def validate_adaptive_config(
    section: dict[str, Any],
    references: np.ndarray | None = None,
) -> ParameterValidationResult:
    """
    Check an ``adaptive_filter`` config section without raising.

    Parameters
    ----------
    section : dict
        Keys ``algorithm``, ``filter_order``, ``mu``, ``lambda``, ``delta``,
        ``resymmetrize_every``. Missing keys are not errors; the defaults
        apply. Every present option is checked, whichever algorithm is
        selected, matching ``AdaptiveFilterConfig.from_dict``.
    references : np.ndarray, optional
        Reference matrix. When given, the LMS step size is compared against
        the stability bound ``2 / (filter_order * sum(mean(r**2)))``.

    Returns
    -------
    ParameterValidationResult

    Examples
    --------
    >>> result = validate_adaptive_config({"algorithm": "RLS", "lambda": 1.01})
    >>> result.is_valid
    False
    >>> result.errors
    ['InvalidForgettingFactor: ...']
    """
    warnings = []
    errors = []
    suggestions = []

    params = dict(get_default_config()["adaptive_filter"])
    if section is not None and not isinstance(section, dict):
        errors.append(
            f"ConfigError: adaptive_filter must be a mapping, got {type(section).__name__}"
        )
    elif section:
        params.update(section)
        if "lambda_" in section and "lambda" not in section:
            params["lambda"] = section["lambda_"]

    def run(check, *args):
        try:
            return check(*args)
        except (ValueError, TypeError) as e:
            errors.append(f"{type(e).__name__}: {e}")
            return None

    algorithm = run(check_algorithm, params["algorithm"]) or str(params["algorithm"])
    filter_order = run(check_filter_order, params["filter_order"])

    mu = run(check_step_size, params["mu"])
    run(check_forgetting_factor, params["lambda"])
    run(check_delta, params["delta"])
    run(check_resymmetrize_every, params.get("resymmetrize_every"))

    lms_checkable = algorithm == "LMS" and mu is not None and filter_order is not None
    if lms_checkable and references is not None:
        ref_power = float(np.sum(np.mean(as_matrix(references, "references") ** 2, axis=1)))
        if ref_power > 0:
            mu_max = 2.0 / (filter_order * ref_power)
            if mu >= mu_max:
                warnings.append(
                    f"LMS STABILITY: mu={mu:g} exceeds the bound 2/(F*P_ref)={mu_max:.3g}; "
                    "weights may diverge."
                )
                suggestions.append(f"Reduce mu below {mu_max:.3g} or normalise the references.")

    if filter_order is not None:
        low, high = RECOMMENDED_FILTER_ORDER_RANGE
        if not low <= filter_order <= high:
            warnings.append(
                f"FILTER ORDER {filter_order} is outside the usual range [{low}, {high}]."
            )

    if errors:
        suggestions.append(
            "Valid ranges: filter_order >= 1, mu > 0, lambda in [0.99, 1.0], delta > 0."
        )

    return ParameterValidationResult(
        is_valid=len(errors) == 0,
        algorithm=algorithm,
        parameters=params,
        warnings=warnings,
        errors=errors,
        recovery_suggestions=suggestions,
    )


# =============================================================================
# Cost Estimation
# =============================================================================


def estimate_processing_cost(
    n_channels: int,
    n_samples: int,
    filter_order: int,
    n_references: int,
    algorithm: str = "RLS",
) -> CostEstimate:
    """
    Estimate arithmetic cost of filtering a whole recording.

    Complexity per sample per channel, with M = filter_order * n_references:
    - LMS: ~2M (prediction plus weight update)
    - RLS: ~3M^2 + 3M (P @ x, gain, covariance update)

    Examples
    --------
    >>> lms = estimate_processing_cost(4, 4800, 10, 3, "LMS")
    >>> rls = estimate_processing_cost(4, 4800, 10, 3, "RLS")
    >>> rls.ops_per_sample // lms.ops_per_sample
    46
    """
    algorithm = check_algorithm(algorithm)
    m = filter_order * n_references
    if algorithm == "RLS":
        ops_per_sample = 3 * m * m + 3 * m
    else:
        ops_per_sample = 2 * m

    n_updates = max(n_samples - filter_order + 1, 0)
    total_ops = float(n_channels) * n_updates * ops_per_sample

    return CostEstimate(
        algorithm=algorithm,
        n_coefficients=m,
        ops_per_sample=ops_per_sample,
        total_ops=total_ops,
        estimated_seconds=total_ops / ESTIMATED_OPS_PER_SECOND,
    )


# =============================================================================
# Configuration File Validation
# =============================================================================

REQUIRED_CONFIG_SECTIONS = ["adaptive_filter"]

# section -> option -> (type, min, max); floats also accept ints
CONFIG_TYPE_SPECS = {
    "adaptive_filter": {
        "filter_order": (int, 1, 1_000),
        "mu": (float, 0.0, 1.0),
        "lambda": (float, LAMBDA_RANGE[0], LAMBDA_RANGE[1]),
        "delta": (float, 0.0, 1e6),
    },
    "simulation": {
        "sampling_rate_hz": (float, 1.0, 1e6),
        "duration_sec": (float, 0.001, 3600.0),
    },
}


def _read_config_file(path: Path) -> tuple[Any, list[str], list[str], list[str]]:
    """Return (data, warnings, errors, suggestions); data is None on failure."""
    if not path.exists():
        return (
            None,
            [f"CONFIG FILE NOT FOUND: {path}; built-in defaults apply."],
            [],
            [f"Write a config to {path}, or pass config_path=None for the shipped default."],
        )
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        return (
            None,
            [],
            [f"YAML PARSE ERROR in {path}: {e}"],
            ["Indent with spaces (not tabs) and put a colon after every key."],
        )
    except OSError as e:
        return None, [], [f"FILE READ ERROR for {path}: {e}"], ["Check the path and its permissions."]

    if data is None:
        return None, [f"CONFIG FILE EMPTY: {path}; built-in defaults apply."], [], []
    if not isinstance(data, dict):
        return (
            None,
            [],
            [f"CONFIG STRUCTURE ERROR: {path} must contain a mapping, found {type(data).__name__}."],
            ["Start the file with 'adaptive_filter:' and indent its options below it."],
        )
    return data, [], [], []


def _check_option(section: str, name: str, value: Any, spec: tuple) -> tuple[str | None, str | None]:
    """Return (type_error, range_issue) for one option; either may be None."""
    expected, low, high = spec
    allowed = (int, float) if expected is float else (expected,)
    if isinstance(value, bool) or not isinstance(value, allowed):
        return (
            f"TYPE ERROR: {section}.{name} must be {expected.__name__}, "
            f"found {type(value).__name__} ({value!r}).",
            None,
        )
    if not low <= value <= high:
        return None, f"RANGE WARNING: {section}.{name}={value} lies outside [{low}, {high}]."
    return None, None


def validate_config_file(
    config_path: Path | str | None = None,
    strict: bool = False,
) -> ConfigValidationResult:
    """
    Review a YAML configuration file without raising.

    Reports, in order: file problems (missing, empty, unparsable, not a
    mapping), missing required sections, option type errors, out-of-range
    options and an unsupported algorithm name. Sections that could not be
    read are replaced by the defaults in the returned ``config``.

    Parameters
    ----------
    config_path : Path or str, optional
        File to check. Default is configs/default.yaml.
    strict : bool
        Escalate range issues and missing sections to errors, and fail on any
        remaining warning. Default False.

    Returns
    -------
    ConfigValidationResult

    Examples
    --------
    >>> result = validate_config_file("configs/lab.yaml", strict=True)
    >>> if not result.is_valid:
    ...     print("\\n".join(result.errors + result.recovery_suggestions))
    """
    path = DEFAULT_CONFIG_PATH if config_path is None else Path(config_path)
    data, warnings, errors, suggestions = _read_config_file(path)
    config = data if data is not None else get_default_config()

    for section in REQUIRED_CONFIG_SECTIONS:
        if section in config:
            continue
        if strict:
            errors.append(f"MISSING REQUIRED SECTION: '{section}'.")
        else:
            warnings.append(f"MISSING SECTION: '{section}'; defaults apply.")
        config[section] = get_default_config()[section]

    range_issues = []
    for section, specs in CONFIG_TYPE_SPECS.items():
        options = config.get(section)
        if not isinstance(options, dict):
            continue
        for name, spec in specs.items():
            if name not in options:
                continue
            type_error, range_issue = _check_option(section, name, options[name], spec)
            if type_error:
                errors.append(type_error)
            if range_issue:
                range_issues.append(range_issue)
    (errors if strict else warnings).extend(range_issues)

    filter_section = config["adaptive_filter"]
    algorithm = filter_section.get("algorithm") if isinstance(filter_section, dict) else None
    if algorithm is not None and str(algorithm).upper() not in SUPPORTED_ALGORITHMS:
        errors.append(
            f"UNKNOWN ALGORITHM: adaptive_filter.algorithm={algorithm!r}; "
            f"supported: {', '.join(SUPPORTED_ALGORITHMS)}."
        )

    return ConfigValidationResult(
        is_valid=not errors and not (strict and warnings),
        config=config,
        file_path=path if path.exists() else None,
        warnings=warnings,
        errors=errors,
        recovery_suggestions=suggestions,
    )
