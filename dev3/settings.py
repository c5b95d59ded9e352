"""TOML configuration loader.

Loads store and server settings from defaults.toml, then applies DEV3_*
environment overrides. Existing environment values always win over the
file.
"""

from __future__ import annotations

import logging
import os
import tomllib
from collections.abc import Mapping
from pathlib import Path

from pydantic import ValidationError

from dev3.schemas.config import Dev3Config, StoreBackend

logger = logging.getLogger(__name__)

# Default config directory relative to the dev3 package
_CONFIG_DIR = Path(__file__).parent / "config"

# Environment variable → (section, key)
_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "DEV3_STORE_BACKEND": ("store", "backend"),
    "DEV3_DB_PATH": ("store", "db_path"),
    "DEV3_HOST": ("server", "host"),
    "DEV3_PORT": ("server", "port"),
}


def load_config(
    config_path: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> Dev3Config:
    """Load configuration from a TOML file plus environment overrides.

    Args:
        config_path: Path to a TOML file. Defaults to dev3/config/defaults.toml.
        env: Environment mapping to read overrides from. Defaults to os.environ.

    Returns:
        Dev3Config with file values and overrides applied.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ValueError: If a value is invalid (e.g. an unknown store backend).
    """
    path = config_path or _CONFIG_DIR / "defaults.toml"
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")

    with open(path, "rb") as f:
        raw = tomllib.load(f)

    sections: dict[str, dict[str, object]] = {
        "store": dict(raw.get("store", {})),
        "server": dict(raw.get("server", {})),
    }

    env = os.environ if env is None else env
    for var, (section, key) in _ENV_OVERRIDES.items():
        value = env.get(var)
        if value:
            logger.debug("Config override %s.%s from %s", section, key, var)
            sections[section][key] = value

    backend = sections["store"].get("backend")
    if backend is not None and backend not in {b.value for b in StoreBackend}:
        raise ValueError(
            f"Unknown store backend '{backend}' in {path}; "
            f"expected one of: {', '.join(b.value for b in StoreBackend)}"
        )

    try:
        return Dev3Config.model_validate(sections)
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration in {path}: {exc}") from exc
