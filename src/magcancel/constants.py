"""
Default Parameters for Adaptive Interference Cancellation

All constants include units in their names where a unit applies.
"""

from __future__ import annotations

# =============================================================================
# Adaptive Filter Defaults
# =============================================================================

# Lagged samples per reference channel in the regressor
DEFAULT_FILTER_ORDER: int = 10

# LMS step size (stable for typical pT-scale recordings, range 0.001 to 0.1)
DEFAULT_MU: float = 0.01

# RLS forgetting factor and inverse-correlation initialisation (P = I / delta)
DEFAULT_LAMBDA: float = 0.995
DEFAULT_DELTA: float = 1.0

# Accepted forgetting-factor range, inclusive on both ends
LAMBDA_RANGE: tuple[float, float] = (0.99, 1.0)

# Recommended filter-order range (not enforced)
RECOMMENDED_FILTER_ORDER_RANGE: tuple[int, int] = (5, 50)

SUPPORTED_ALGORITHMS: tuple[str, ...] = ("LMS", "RLS")
DEFAULT_ALGORITHM: str = "RLS"

# =============================================================================
# Synthetic Bench Parameters
# =============================================================================

SAMPLING_RATE_HZ: float = 4800.0
DURATION_SEC: float = 1.0

# Synthetic amplitudes are in picotesla (unit-order values for the default mu/delta)

# Evoked test signal
SIGNAL_FREQUENCY_HZ: float = 17.0
SIGNAL_AMPLITUDE_PT: float = 1.0

# Power-line interference seen by the reference sensors
INTERFERENCE_FREQUENCIES_HZ: tuple[float, ...] = (50.0, 100.0)
INTERFERENCE_AMPLITUDE_PT: float = 5.0
REFERENCE_NOISE_STD_PT: float = 1.0
SENSOR_NOISE_STD_PT: float = 0.5

DEFAULT_RANDOM_SEED: int = 42

# Operation throughput used for cost estimates (single-thread NumPy, per-sample loop)
ESTIMATED_OPS_PER_SECOND: float = 5e7
