"""Camera configuration loading utilities."""

from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml


def merge_config(
    base: Dict[str, Any],
    override: Dict[str, Any],
) -> Dict[str, Any]:
    """
    Deep merge two configurations.

    Nested sections are merged key by key; any other override value replaces
    the base value. Neither input is modified.

    Args:
        base: Base configuration.
        override: Override configuration.

    Returns:
        Merged configuration.
    """
    result = dict(base)

    for key, value in override.items():
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = merge_config(result[key], value)
        else:
            result[key] = value

    return result


def load_config(
    config_path: Union[str, Path],
    overrides: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Load a YAML configuration file.

    Args:
        config_path: Path to config file.
        overrides: Optional values merged over the file contents, e.g.
                   {"camera": {"extrinsics": {"rotation_deg": [5, 0, 0]}}}.

    Returns:
        Configuration dictionary.

    Raises:
        FileNotFoundError: If the config file does not exist.
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r") as f:
        config = yaml.safe_load(f) or {}

    if overrides:
        config = merge_config(config, overrides)

    return config


def save_config(config: Dict[str, Any], path: Union[str, Path]) -> None:
    """
    Save a configuration (e.g. CameraModel.to_config()) to a YAML file.

    Args:
        config: Configuration dictionary of plain Python types.
        path: Output file path; parent directories are created.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w") as f:
        yaml.safe_dump(config, f, default_flow_style=False, sort_keys=False)


def get_nested(
    config: Dict[str, Any],
    key: str,
    default: Any = None,
) -> Any:
    """
    Get nested config value using dot notation.

    Args:
        config: Configuration dictionary.
        key: Dot-separated key (e.g., 'camera.intrinsics.width').
        default: Default value if key not found.

    Returns:
        Config value or default.
    """
    value = config

    for k in key.split("."):
        if isinstance(value, dict) and k in value:
            value = value[k]
        else:
            return default

    return value
