"""
Synthetic Interference Recordings

Generates multichannel recordings with a known clean signal buried in
interference that the reference sensors also see, for testing and
benchmarking the adaptive filter banks.

Forward Model:
    d_c[n] = s[n] + sum_r (h_{c,r} * r_r)[n] + v_c[n]

    where:
    - s: evoked test signal (17 Hz sinusoid by default)
    - r_r: reference-sensor recordings (line harmonics + white noise)
    - h_{c,r}: short FIR coupling path from reference r to channel c
    - v_c: uncorrelated sensor noise
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from scipy import signal

from magcancel.constants import (
    DEFAULT_RANDOM_SEED,
    DURATION_SEC,
    INTERFERENCE_AMPLITUDE_PT,
    INTERFERENCE_FREQUENCIES_HZ,
    REFERENCE_NOISE_STD_PT,
    SAMPLING_RATE_HZ,
    SENSOR_NOISE_STD_PT,
    SIGNAL_AMPLITUDE_PT,
    SIGNAL_FREQUENCY_HZ,
)


@dataclass
class SyntheticRecording:
    """A synthetic recording with its ground truth.

    Attributes
    ----------
    channels : np.ndarray
        Corrupted channel matrix, shape (n_channels, n_samples).
    references : np.ndarray
        Reference matrix, shape (n_references, n_samples).
    clean : np.ndarray
        Clean signal per channel (before interference and sensor noise),
        shape (n_channels, n_samples).
    interference : np.ndarray
        Interference reaching each channel, shape (n_channels, n_samples).
    coupling : np.ndarray
        FIR coupling taps, shape (n_channels, n_references, n_taps).
    time_vector : np.ndarray
        Sample times in seconds.
    sampling_rate_hz : float
    """

    channels: np.ndarray
    references: np.ndarray
    clean: np.ndarray
    interference: np.ndarray
    coupling: np.ndarray
    time_vector: np.ndarray
    sampling_rate_hz: float


def generate_time_vector(
    duration_sec: float = DURATION_SEC,
    sampling_rate_hz: float = SAMPLING_RATE_HZ,
) -> np.ndarray:
    """
    Generate time vector for simulation.

    Returns
    -------
    np.ndarray
        Time vector with shape (n_samples,) in seconds.
    """
    n_samples = int(round(duration_sec * sampling_rate_hz))
    return np.arange(n_samples) / sampling_rate_hz


def make_reference_noise(
    time_vector: np.ndarray,
    n_references: int = 3,
    frequencies_hz: tuple[float, ...] = INTERFERENCE_FREQUENCIES_HZ,
    amplitude: float = INTERFERENCE_AMPLITUDE_PT,
    noise_std: float = REFERENCE_NOISE_STD_PT,
    seed: int = DEFAULT_RANDOM_SEED,
) -> np.ndarray:
    """
    Generate reference-sensor recordings of environmental interference.

    Each reference sees every line frequency with its own random phase,
    plus white noise.

    Returns
    -------
    np.ndarray
        Shape (n_references, n_samples).
    """
    rng = np.random.default_rng(seed)
    n_samples = len(time_vector)

    refs = np.zeros((n_references, n_samples), dtype=np.float64)
    for i in range(n_references):
        for f in frequencies_hz:
            phase = rng.uniform(0.0, 2 * np.pi)
            refs[i] += amplitude * np.sin(2 * np.pi * f * time_vector + phase)
        refs[i] += rng.standard_normal(n_samples) * noise_std
    return refs


def couple_references(references: np.ndarray, coupling: np.ndarray) -> np.ndarray:
    """
    Pass references through per-channel FIR coupling paths.

    Parameters
    ----------
    references : np.ndarray
        Shape (n_references, n_samples).
    coupling : np.ndarray
        Shape (n_channels, n_references, n_taps).

    Returns
    -------
    np.ndarray
        Interference per channel, shape (n_channels, n_samples).
    """
    n_channels, n_references, _ = coupling.shape
    interference = np.zeros((n_channels, references.shape[1]), dtype=np.float64)
    for c in range(n_channels):
        for r in range(n_references):
            interference[c] += signal.lfilter(coupling[c, r], [1.0], references[r])
    return interference


def make_synthetic_recording(
    n_channels: int = 4,
    n_references: int = 3,
    duration_sec: float = DURATION_SEC,
    sampling_rate_hz: float = SAMPLING_RATE_HZ,
    signal_frequency_hz: float = SIGNAL_FREQUENCY_HZ,
    signal_amplitude: float = SIGNAL_AMPLITUDE_PT,
    coupling_taps: int = 3,
    coupling_scale: float = 0.5,
    sensor_noise_std: float = SENSOR_NOISE_STD_PT,
    frequencies_hz: tuple[float, ...] = INTERFERENCE_FREQUENCIES_HZ,
    seed: int = DEFAULT_RANDOM_SEED,
) -> SyntheticRecording:
    """
    Simulate a multichannel recording with reference-correlated interference.

    Parameters
    ----------
    n_channels : int
        Number of primary channels.
    n_references : int
        Number of reference sensors.
    duration_sec, sampling_rate_hz : float
        Recording length and rate.
    signal_frequency_hz, signal_amplitude : float
        Evoked test signal, shared by all channels.
    coupling_taps : int
        Length of each FIR coupling path. Keep it <= filter_order for the
        filter to be able to model the path exactly.
    coupling_scale : float
        Coupling taps are drawn uniformly from [0, coupling_scale).
    sensor_noise_std : float
        Uncorrelated noise added to each channel.
    seed : int
        Random seed for reproducibility.

    Returns
    -------
    SyntheticRecording
    """
    rng = np.random.default_rng(seed + 100)
    time_vector = generate_time_vector(duration_sec, sampling_rate_hz)
    n_samples = len(time_vector)

    references = make_reference_noise(
        time_vector, n_references=n_references, frequencies_hz=frequencies_hz, seed=seed
    )

    clean_row = signal_amplitude * np.sin(2 * np.pi * signal_frequency_hz * time_vector)
    clean = np.tile(clean_row, (n_channels, 1))

    coupling = rng.uniform(0.0, coupling_scale, size=(n_channels, n_references, coupling_taps))
    interference = couple_references(references, coupling)

    noise = rng.standard_normal((n_channels, n_samples)) * sensor_noise_std
    channels = clean + interference + noise

    return SyntheticRecording(
        channels=channels,
        references=references,
        clean=clean,
        interference=interference,
        coupling=coupling,
        time_vector=time_vector,
        sampling_rate_hz=sampling_rate_hz,
    )


def make_single_reference_case(
    alpha: float = 0.8,
    n_samples: int = 4800,
    signal_amplitude: float = 0.1,
    signal_frequency_hz: float = SIGNAL_FREQUENCY_HZ,
    sampling_rate_hz: float = SAMPLING_RATE_HZ,
    seed: int = DEFAULT_RANDOM_SEED,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Build ``d[n] = s[n] + alpha * r[n]`` with s uncorrelated with r.

    r is unit-variance white Gaussian noise; s is a weak sinusoid, so the
    interference dominates the raw channel.

    Returns
    -------
    channel : np.ndarray
        Shape (1, n_samples).
    reference : np.ndarray
        Shape (1, n_samples).
    clean : np.ndarray
        The signal s, shape (1, n_samples).
    """
    rng = np.random.default_rng(seed)
    reference = rng.standard_normal((1, n_samples))
    t = np.arange(n_samples) / sampling_rate_hz
    clean = (signal_amplitude * np.sin(2 * np.pi * signal_frequency_hz * t))[np.newaxis, :]
    return clean + alpha * reference, reference, clean
