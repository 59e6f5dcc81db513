"""
YAML Configuration for magcancel

The file ``configs/default.yaml`` holds three sections:

- adaptive_filter: algorithm choice and LMS/RLS parameters
- evaluation: convergence check settings used by the demo
- simulation: synthetic recording parameters

A file only needs the keys it changes; everything else comes from
``get_default_config()``. Loading is lenient (problems become messages and
the defaults are used); strict checking lives in
``magcancel.validation.validate_config_file``.

Usage:
    from magcancel.config import load_config

    cfg = load_config()
    order = cfg["adaptive_filter"]["filter_order"]
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from magcancel.constants import (
    DEFAULT_ALGORITHM,
    DEFAULT_DELTA,
    DEFAULT_FILTER_ORDER,
    DEFAULT_LAMBDA,
    DEFAULT_MU,
    DEFAULT_RANDOM_SEED,
    DURATION_SEC,
    INTERFERENCE_FREQUENCIES_HZ,
    SAMPLING_RATE_HZ,
    SIGNAL_FREQUENCY_HZ,
)

# src/magcancel/config.py -> repository root
PROJECT_ROOT = Path(__file__).resolve().parents[2]
CONFIG_DIR = PROJECT_ROOT / "configs"
DEFAULT_CONFIG_PATH = CONFIG_DIR / "default.yaml"


def get_config_path(config_name: str = "default.yaml") -> Path:
    """Resolve a config name such as ``"default"`` to a file under configs/."""
    name = config_name if config_name.endswith(".yaml") else f"{config_name}.yaml"
    return CONFIG_DIR / name


def get_default_config() -> dict[str, Any]:
    """Built-in configuration; a fresh dict on every call."""
    return {
        "adaptive_filter": {
            "algorithm": DEFAULT_ALGORITHM,
            "filter_order": DEFAULT_FILTER_ORDER,
            "mu": DEFAULT_MU,
            "lambda": DEFAULT_LAMBDA,
            "delta": DEFAULT_DELTA,
            "resymmetrize_every": None,
            "n_jobs": 1,
        },
        "evaluation": {
            "convergence_threshold": 0.9,
            "convergence_window": 480,
        },
        "simulation": {
            "sampling_rate_hz": SAMPLING_RATE_HZ,
            "duration_sec": DURATION_SEC,
            "n_channels": 4,
            "n_references": 3,
            "signal_frequency_hz": SIGNAL_FREQUENCY_HZ,
            "interference_frequencies_hz": list(INTERFERENCE_FREQUENCIES_HZ),
            "random_seed": DEFAULT_RANDOM_SEED,
        },
    }


def _merge_over_defaults(overrides: dict[str, Any]) -> dict[str, Any]:
    merged = get_default_config()
    for section, values in overrides.items():
        if isinstance(values, dict) and isinstance(merged.get(section), dict):
            merged[section].update(values)
        else:
            merged[section] = values
    return merged


def load_config_safe(
    config_path: str | Path | None = None,
) -> tuple[dict[str, Any], list[str]]:
    """
    Read a YAML config and merge it over the defaults.

    Parameters
    ----------
    config_path : str or Path, optional
        Config file. Default is configs/default.yaml.

    Returns
    -------
    tuple[dict, list[str]]
        The merged configuration and a list of problems encountered. When
        the list is non-empty the configuration is the plain defaults.

    Examples
    --------
    >>> cfg, problems = load_config_safe("configs/lab.yaml")
    >>> for problem in problems:
    ...     print("config:", problem)
    """
    path = DEFAULT_CONFIG_PATH if config_path is None else Path(config_path)

    if not path.exists():
        return get_default_config(), [f"{path}: not found, using defaults"]

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        return get_default_config(), [f"{path}: invalid YAML ({e}), using defaults"]
    except OSError as e:
        return get_default_config(), [f"{path}: unreadable ({e}), using defaults"]

    if data is None:
        return get_default_config(), [f"{path}: empty file, using defaults"]
    if not isinstance(data, dict):
        return get_default_config(), [
            f"{path}: top level is {type(data).__name__}, not a mapping; using defaults"
        ]

    return _merge_over_defaults(data), []


def load_config(config_path: str | Path | None = None) -> dict[str, Any]:
    """
    Like ``load_config_safe`` but drops the problem list.

    Never raises for a missing or malformed file.

    Examples
    --------
    >>> load_config()["adaptive_filter"]["algorithm"]
    'RLS'
    """
    config, _ = load_config_safe(config_path)
    return config


def save_config(config: dict[str, Any], config_path: str | Path) -> None:
    """Write ``config`` as block-style YAML, creating parent directories."""
    path = Path(config_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(config, f, default_flow_style=False, sort_keys=False)
