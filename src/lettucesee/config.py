"""
Detector Configuration Module

This module provides a Python interface to detector.yaml, the single
source of truth for the model contract, decoding threshold, class
catalog and ONNX Runtime thread counts.

Usage:
    from lettucesee.config import get_config, get_value, get_model_config

    # Get full config
    config = get_config()

    # Get a single value
    threshold = get_value("decoding", "confidence_threshold")

    # Get model config
    model = get_model_config()

The file ships inside the package. Set LETTUCESEE_CONFIG to point at a
different YAML file (read once, then cached).

Author: Matthew Hong
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List

import yaml


# =============================================================================
# Constants
# =============================================================================

CONFIG_ENV_VAR = "LETTUCESEE_CONFIG"

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "detector.yaml"


def get_config_path() -> Path:
    """
    Resolve the configuration file location.

    Returns:
        Path from LETTUCESEE_CONFIG if set, else the packaged detector.yaml
    """
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override)
    return _DEFAULT_CONFIG_PATH


# =============================================================================
# Configuration Loading
# =============================================================================

@lru_cache(maxsize=1)
def get_config() -> Dict[str, Any]:
    """
    Load and cache the detector configuration.

    Returns:
        Complete configuration dictionary

    Raises:
        FileNotFoundError: If the configuration file is missing
        yaml.YAMLError: If YAML parsing fails

    Example:
        >>> config = get_config()
        >>> config["model"]["input_size"]
        640
    """
    config_path = get_config_path()

    if not config_path.exists():
        raise FileNotFoundError(
            f"Detector configuration not found: {config_path}\n"
            f"Expected location: {config_path.absolute()}"
        )

    with open(config_path, "r") as f:
        return yaml.safe_load(f)


def reload_config() -> Dict[str, Any]:
    """
    Force reload of configuration (clears cache).

    Returns:
        Freshly loaded configuration dictionary
    """
    get_config.cache_clear()
    return get_config()


# =============================================================================
# Section Access
# =============================================================================

def get_section(section: str) -> Dict[str, Any]:
    """
    Get a top-level configuration section.

    Args:
        section: Section name (e.g., "model", "decoding")

    Returns:
        Dictionary of all values in the section

    Raises:
        KeyError: If section not found
    """
    config = get_config()

    if section not in config:
        available = list(config.keys())
        raise KeyError(
            f"Section '{section}' not found. Available: {available}"
        )

    return config[section]


def get_value(section: str, key: str) -> Any:
    """
    Get a configuration value by section and key.

    Args:
        section: Top-level section name (e.g., "model")
        key: Key within the section (e.g., "input_size")

    Returns:
        The configured value

    Raises:
        KeyError: If section or key not found

    Example:
        >>> get_value("decoding", "confidence_threshold")
        0.25
    """
    section_data = get_section(section)

    if key not in section_data:
        available = list(section_data.keys())
        raise KeyError(
            f"Key '{key}' not found in {section}. "
            f"Available keys: {available}"
        )

    return section_data[key]


def get_model_config() -> Dict[str, Any]:
    """
    Get the detection model configuration.

    Example:
        >>> get_model_config()["num_classes"]
        3
    """
    return get_section("model")


def get_class_table() -> List[Dict[str, Any]]:
    """
    Get the class catalog table.

    Returns:
        List of {"index", "name", "color"} entries in file order
    """
    return get_config().get("classes", [])


# =============================================================================
# Validation
# =============================================================================

def validate_config() -> List[str]:
    """
    Validate the detector configuration.

    Returns:
        List of validation error messages (empty if valid)
    """
    errors = []

    try:
        config = get_config()
    except (OSError, yaml.YAMLError) as e:
        return [f"Failed to load config: {e}"]

    for section in ["model", "decoding", "classes", "fallback_class", "onnx_runtime"]:
        if section not in config:
            errors.append(f"Missing required section: {section}")

    model = config.get("model", {})
    for field in ["name", "filename", "input_size", "num_classes"]:
        if field not in model:
            errors.append(f"Model missing field: {field}")

    threshold = config.get("decoding", {}).get("confidence_threshold")
    if threshold is None:
        errors.append("Missing decoding field: confidence_threshold")
    elif not 0.0 <= threshold <= 1.0:
        errors.append(f"confidence_threshold out of range [0, 1]: {threshold}")

    seen = set()
    for entry in config.get("classes", []):
        index = entry.get("index")
        if index in seen:
            errors.append(f"Duplicate class index: {index}")
        seen.add(index)

        color = entry.get("color", [])
        if len(color) != 3 or not all(0 <= c <= 255 for c in color):
            errors.append(f"Class {index} has invalid RGB color: {color}")

    num_classes = model.get("num_classes")
    if num_classes is not None and any(
        not 0 <= i < num_classes for i in seen if isinstance(i, int)
    ):
        errors.append(f"Class index outside [0, {num_classes})")

    return errors
