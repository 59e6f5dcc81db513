"""
Exception Types for Adaptive Interference Cancellation

Every detected error is raised before the first sample is processed and
carries the offending parameter name and value.
"""

from __future__ import annotations

from typing import Any


class AdaptiveFilterError(ValueError):
    """Base class for invalid adaptive-filter inputs.

    Attributes
    ----------
    parameter : str
        Name of the offending parameter.
    value : Any
        The rejected value.
    """

    def __init__(self, parameter: str, value: Any, message: str) -> None:
        super().__init__(message)
        self.parameter = parameter
        self.value = value


class InvalidFilterOrder(AdaptiveFilterError):
    """Raised when filter_order is not a positive int or exceeds the sample count."""


class InvalidStepSize(AdaptiveFilterError):
    """Raised when the LMS step size mu is not strictly positive."""


class InvalidForgettingFactor(AdaptiveFilterError):
    """Raised when the RLS forgetting factor lies outside [0.99, 1.0]."""


class InvalidDelta(AdaptiveFilterError):
    """Raised when the RLS initialisation constant delta is not strictly positive."""


class DimensionMismatch(AdaptiveFilterError):
    """Raised when two matrices that must share a dimension do not."""


class UnknownAlgorithm(AdaptiveFilterError):
    """Raised when the configured algorithm is neither LMS nor RLS."""


class InvalidResymmetrizeInterval(AdaptiveFilterError):
    """Raised when resymmetrize_every is neither None nor a positive int."""


class ConfigError(ValueError):
    """Raised for unreadable or structurally invalid configuration files."""
