"""
Filtering Module

Contains the shared reference regressor, the LMS and RLS adaptive filter
banks, and noise-reduction evaluation.
"""

from .regressor import (
    ReferenceRegressorBuilder,
    build_regressor,
    pack_weights,
    unpack_weights,
)
from .adaptive_filter import (
    AdaptiveFilterConfig,
    FilterResult,
    LMSChannelFilter,
    LMSConfig,
    LMSFilterBank,
    LMSState,
    RLSChannelFilter,
    RLSConfig,
    RLSFilterBank,
    RLSState,
    cancel_interference,
    config_summary,
    make_filter_bank,
    predict_interference,
)
from .evaluation import (
    ReductionReport,
    evaluate_noise_reduction,
    reference_correlation,
    samples_to_threshold,
)

__all__ = [
    "ReferenceRegressorBuilder",
    "build_regressor",
    "pack_weights",
    "unpack_weights",
    "AdaptiveFilterConfig",
    "FilterResult",
    "LMSChannelFilter",
    "LMSConfig",
    "LMSFilterBank",
    "LMSState",
    "RLSChannelFilter",
    "RLSConfig",
    "RLSFilterBank",
    "RLSState",
    "cancel_interference",
    "config_summary",
    "make_filter_bank",
    "predict_interference",
    "ReductionReport",
    "evaluate_noise_reduction",
    "reference_correlation",
    "samples_to_threshold",
]
