"""
Validation Module for Adaptive Interference Cancellation

Provides strict parameter/shape checks used by the filter banks, advisory
validators for configuration review, and processing-cost estimates.
"""

from __future__ import annotations

from magcancel.validation.input_validators import (
    ConfigValidationResult,
    CostEstimate,
    ParameterValidationResult,
    check_algorithm,
    check_delta,
    check_filter_order,
    check_forgetting_factor,
    check_resymmetrize_every,
    check_signal_shapes,
    check_step_size,
    estimate_processing_cost,
    validate_adaptive_config,
    validate_config_file,
)

__all__ = [
    "ConfigValidationResult",
    "CostEstimate",
    "ParameterValidationResult",
    "check_algorithm",
    "check_delta",
    "check_filter_order",
    "check_forgetting_factor",
    "check_resymmetrize_every",
    "check_signal_shapes",
    "check_step_size",
    "estimate_processing_cost",
    "validate_adaptive_config",
    "validate_config_file",
]
