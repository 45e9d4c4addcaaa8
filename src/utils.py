"""
Settings helpers for the segmentation tool.
"""
from __future__ import annotations

import copy
import os
from typing import Any, Dict

import yaml


DEFAULT_SETTINGS: Dict[str, Any] = {
    "otsu": {
        "max_intensity": 255,
        "bits": 8,
    },
    "binning": {
        "bins": 0,
        "adaptive": False,
        "drop_boundary": False,
    },
}


def load_settings(path: str) -> Dict[str, Any]:
    """Load a YAML configuration file."""
    if not os.path.exists(path):
        raise FileNotFoundError(f"Settings file not found: {path}")

    with open(path, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)

    if not isinstance(data, dict):
        raise ValueError("Settings file must define a dictionary at the top level")

    return data


def merge_settings(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursively merge two settings dicts.

    Nested dicts are merged key by key, any other value in ``override``
    replaces the one in ``base``. Neither input is modified.
    """
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_settings(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged
