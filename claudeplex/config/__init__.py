"""Configuration for claudeplex.

Read once at import time from `CLAUDEPLEX_CONFIG_PATH`
(default `~/.claudeplex/config.yml`). A `.env` file next to the config
(or at `CLAUDEPLEX_ENV_PATH`) is loaded first so `${VAR}` references in the
YAML can be satisfied from it.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

from claudeplex.config.loader import load_app_config
from claudeplex.config.schema import AppConfig

_DEFAULT_CONFIG_DIR = Path("~/.claudeplex").expanduser()

_config_env_path = os.getenv("CLAUDEPLEX_CONFIG_PATH")
config_path = Path(_config_env_path).expanduser() if _config_env_path else _DEFAULT_CONFIG_DIR / "config.yml"

_env_path = os.getenv("CLAUDEPLEX_ENV_PATH")
_dotenv_path = Path(_env_path).expanduser() if _env_path else config_path.parent / ".env"
load_dotenv(_dotenv_path)

config: AppConfig = load_app_config(config_path)

__all__ = ["AppConfig", "config", "config_path"]
