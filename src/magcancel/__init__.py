"""
magcancel - Multi-Reference Adaptive Interference Cancellation

This package contains:
- Filtering: shared reference regressor, LMS/RLS filter banks, noise-reduction evaluation
- Validation: parameter, shape and config-file checks, processing-cost estimates
- Simulation: synthetic recordings with known ground truth

Usage:
    # After installing with: pip install -e .
    from magcancel import cancel_interference, evaluate_noise_reduction

    result = cancel_interference(channels, references, {"algorithm": "RLS"})
    report = evaluate_noise_reduction(channels, result.filtered)
"""

from magcancel.errors import (
    AdaptiveFilterError,
    ConfigError,
    DimensionMismatch,
    InvalidDelta,
    InvalidFilterOrder,
    InvalidForgettingFactor,
    InvalidResymmetrizeInterval,
    InvalidStepSize,
    UnknownAlgorithm,
)
from magcancel.filtering import (
    AdaptiveFilterConfig,
    FilterResult,
    LMSConfig,
    LMSFilterBank,
    RLSConfig,
    RLSFilterBank,
    ReductionReport,
    ReferenceRegressorBuilder,
    cancel_interference,
    evaluate_noise_reduction,
    predict_interference,
)
from magcancel.log import configure_logging

__version__ = "0.1.0"
__all__ = [
    "AdaptiveFilterError",
    "ConfigError",
    "DimensionMismatch",
    "InvalidDelta",
    "InvalidFilterOrder",
    "InvalidForgettingFactor",
    "InvalidResymmetrizeInterval",
    "InvalidStepSize",
    "UnknownAlgorithm",
    "AdaptiveFilterConfig",
    "FilterResult",
    "LMSConfig",
    "LMSFilterBank",
    "RLSConfig",
    "RLSFilterBank",
    "ReductionReport",
    "ReferenceRegressorBuilder",
    "cancel_interference",
    "evaluate_noise_reduction",
    "predict_interference",
    "configure_logging",
]
