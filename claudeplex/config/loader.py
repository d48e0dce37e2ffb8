import os
import re
from pathlib import Path
from typing import Type, TypeVar

import yaml
from pydantic import BaseModel

from claudeplex.config.schema import AppConfig
from claudeplex.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)


def expand_env_vars(config: object) -> object:
    """Recursively expand environment variables in config.

    Replaces ${VAR} patterns with environment variable values. Unknown
    variables are left as-is.

    Args:
        config: Configuration object (dict, list, str, or primitive)

    Returns:
        Configuration with all ${VAR} patterns replaced
    """
    if isinstance(config, dict):
        return {k: expand_env_vars(v) for k, v in config.items()}
    if isinstance(config, list):
        return [expand_env_vars(item) for item in config]
    if isinstance(config, str):

        def replace_env_var(match: re.Match[str]) -> str:
            return os.getenv(match.group(1), match.group(0))

        return re.sub(r"\$\{([^}]+)\}", replace_env_var, config)
    return config


def _warn_unknown_keys(model: BaseModel, path: str, config_path: Path) -> None:
    """Warn about keys the schema does not know (typos, stale settings)."""
    if model.model_extra:
        logger.warning("Unknown keys in {} at {}: {}", path, config_path, list(model.model_extra.keys()))

    for field_name, field_value in model.__dict__.items():
        if isinstance(field_value, BaseModel):
            _warn_unknown_keys(field_value, f"{path}.{field_name}", config_path)


def load_config(path: Path, model_class: Type[T]) -> T:
    """Load and validate configuration from a YAML file.

    Args:
        path: Path to the config.yml file.
        model_class: The Pydantic model class to use for validation.

    Returns:
        The validated configuration model. A missing or unreadable file
        yields the defaults.
    """
    if not path.exists():
        return model_class()

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Failed to read config file {}: {}", path, e)
        return model_class()

    if not isinstance(raw, dict):
        logger.warning("Config file {} is not a mapping, using defaults", path)
        return model_class()

    model = model_class.model_validate(expand_env_vars(raw))
    _warn_unknown_keys(model, "root", path)
    return model


def load_app_config(path: Path) -> AppConfig:
    """Load the user-level claudeplex configuration."""
    return load_config(path, AppConfig)
