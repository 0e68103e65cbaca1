"""
Configuration management for improc
"""

import copy
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from improc.exceptions import PreconditionError

DEFAULT_CONFIG = {
    "filtering": {
        "padding": "repeat",
        "gaussian_window": 1,
        "gaussian_sigma": 1.0,
        "median_window": 1
    },
    "harris": {
        "threshold": 0.5,
        "k": 0.05,
        "nms_radius": 5.0
    },
    "fast": {
        "threshold": 20,
        "margin": 46,
        "nms_radius": 3.0
    },
    "orb": {
        "levels": 4,
        "fast_threshold": 20,
        "margin": 46,
        "nms_radius": 8.0
    },
    "matching": {
        "ratio": 0.8
    },
    "logging": {
        "level": "INFO",
        "file": None
    }
}


def merge_config(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively overlay overrides onto a copy of base."""
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def load_config(path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load configuration, starting from DEFAULT_CONFIG.

    Args:
        path: Optional YAML file whose mapping overrides the defaults

    Returns:
        Configuration dictionary
    """
    if path is None:
        return copy.deepcopy(DEFAULT_CONFIG)

    with open(path, 'r') as f:
        overrides = yaml.safe_load(f) or {}

    if not isinstance(overrides, dict):
        raise PreconditionError(f"Configuration file {path} must contain a mapping")

    return merge_config(DEFAULT_CONFIG, overrides)
