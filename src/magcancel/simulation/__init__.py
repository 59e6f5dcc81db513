"""
Simulation Module

Synthetic interference recordings with known ground truth for tests,
benchmarks and the demo script.
"""

from .synthetic import (
    SyntheticRecording,
    couple_references,
    generate_time_vector,
    make_reference_noise,
    make_single_reference_case,
    make_synthetic_recording,
)

__all__ = [
    "SyntheticRecording",
    "couple_references",
    "generate_time_vector",
    "make_reference_noise",
    "make_single_reference_case",
    "make_synthetic_recording",
]
