"""Tests for dev3.settings — TOML config loading and environment overrides."""

from pathlib import Path

import pytest

from dev3.schemas.config import Dev3Config, StoreBackend
from dev3.settings import load_config

# Path to the real config file shipped with the package
_DEFAULTS = Path(__file__).parent.parent / "dev3" / "config" / "defaults.toml"


def _write_config(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "dev3.toml"
    path.write_text(content)
    return path


class TestLoadConfig:
    def test_loads_shipped_defaults(self):
        config = load_config(env={})
        assert isinstance(config, Dev3Config)
        assert config.store.backend == StoreBackend.SQLITE
        assert config.store.db_path == "~/.dev3/decisions.db"
        assert config.server.host == "127.0.0.1"
        assert config.server.port == 8430

    def test_shipped_file_matches_model_defaults(self):
        assert load_config(_DEFAULTS, env={}) == Dev3Config()

    def test_custom_file(self, tmp_path):
        path = _write_config(tmp_path, """
[store]
backend = "memory"

[server]
port = 9000
""")
        config = load_config(path, env={})
        assert config.store.backend == StoreBackend.MEMORY
        assert config.server.port == 9000
        # Unspecified keys fall back to model defaults
        assert config.server.host == "127.0.0.1"

    def test_empty_file_uses_defaults(self, tmp_path):
        path = _write_config(tmp_path, "")
        assert load_config(path, env={}) == Dev3Config()

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Config not found"):
            load_config(tmp_path / "nope.toml", env={})

    def test_unknown_backend_raises(self, tmp_path):
        path = _write_config(tmp_path, '[store]\nbackend = "postgres"\n')
        with pytest.raises(ValueError, match="Unknown store backend 'postgres'"):
            load_config(path, env={})

    def test_invalid_port_raises(self, tmp_path):
        path = _write_config(tmp_path, "[server]\nport = 70000\n")
        with pytest.raises(ValueError, match="Invalid configuration"):
            load_config(path, env={})


class TestEnvOverrides:
    def test_env_overrides_file(self, tmp_path):
        env = {
            "DEV3_STORE_BACKEND": "memory",
            "DEV3_DB_PATH": str(tmp_path / "other.db"),
            "DEV3_HOST": "0.0.0.0",
            "DEV3_PORT": "8080",
        }
        config = load_config(env=env)
        assert config.store.backend == StoreBackend.MEMORY
        assert config.store.db_path == str(tmp_path / "other.db")
        assert config.server.host == "0.0.0.0"
        assert config.server.port == 8080

    def test_empty_env_value_ignored(self):
        config = load_config(env={"DEV3_STORE_BACKEND": ""})
        assert config.store.backend == StoreBackend.SQLITE

    def test_env_backend_validated(self):
        with pytest.raises(ValueError, match="Unknown store backend"):
            load_config(env={"DEV3_STORE_BACKEND": "redis"})

    def test_reads_os_environ_by_default(self, monkeypatch):
        monkeypatch.setenv("DEV3_PORT", "8555")
        assert load_config().server.port == 8555
