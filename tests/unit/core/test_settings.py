"""Unit tests for configuration file I/O.

Tests for Settings validation, load_settings, save_settings and set_value.
"""

import tomllib
from pathlib import Path

import pytest
from bucketctl.core.config import Settings, load_settings, save_settings, set_value
from bucketctl.core.errors import ConfigError


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings with an explicit data root."""
    return Settings(root_path=tmp_path / "root", parallelism=2, architecture="64bit")


class TestSettings:
    """Tests for the Settings model."""

    def test_defaults_follow_xdg(self, isolated_home: Path) -> None:
        """The default data root is the XDG data directory."""
        settings = Settings()
        assert settings.root_path == isolated_home
        assert settings.cache_dir == isolated_home / "cache"
        assert settings.bucket_priority == []

    def test_cache_path_override(self, settings: Settings, tmp_path: Path) -> None:
        """An explicit cache_path replaces the default cache directory."""
        settings.cache_path = tmp_path / "cache"
        assert settings.cache_dir == tmp_path / "cache"

    def test_unknown_keys_forbidden(self) -> None:
        """Unknown keys are rejected."""
        with pytest.raises(ValueError):
            Settings.model_validate({"colour": "red"})

    def test_parallelism_bounds(self) -> None:
        """Parallelism must be positive."""
        with pytest.raises(ValueError):
            Settings(parallelism=0)


class TestLoadSettings:
    """Tests for load_settings function."""

    def test_missing_file_gives_defaults(self, tmp_path: Path, isolated_home: Path) -> None:
        """A missing config file yields the defaults."""
        assert load_settings(tmp_path / "missing.toml") == Settings()

    def test_loads_values(self, tmp_path: Path) -> None:
        """Values are read from TOML."""
        path = tmp_path / "config.toml"
        path.write_text('root_path = "/opt/b"\nparallelism = 3\nbucket_priority = ["main"]\n')

        settings = load_settings(path)

        assert settings.root_path == Path("/opt/b")
        assert settings.parallelism == 3
        assert settings.bucket_priority == ["main"]

    def test_invalid_toml(self, tmp_path: Path) -> None:
        """Broken TOML raises ConfigError."""
        path = tmp_path / "config.toml"
        path.write_text("parallelism = [")

        with pytest.raises(ConfigError, match="Invalid TOML syntax"):
            load_settings(path)

    def test_invalid_value(self, tmp_path: Path) -> None:
        """Values failing validation raise ConfigError."""
        path = tmp_path / "config.toml"
        path.write_text('architecture = "sparc"\n')

        with pytest.raises(ConfigError, match="Invalid config content"):
            load_settings(path)


class TestSaveSettings:
    """Tests for save_settings function."""

    def test_round_trip(self, settings: Settings, tmp_path: Path) -> None:
        """Saved settings load back equal."""
        path = tmp_path / "conf" / "config.toml"
        settings.bucket_priority = ["main", "extras"]

        save_settings(settings, path)

        assert load_settings(path) == settings

    def test_unset_cache_path_omitted(self, settings: Settings, tmp_path: Path) -> None:
        """TOML has no null, so an unset cache_path is left out."""
        path = tmp_path / "config.toml"
        save_settings(settings, path)

        with open(path, "rb") as f:
            assert "cache_path" not in tomllib.load(f)


class TestSetValue:
    """Tests for set_value function."""

    def test_sets_int(self, settings: Settings) -> None:
        """Numeric values are parsed by validation."""
        assert set_value(settings, "parallelism", "8").parallelism == 8

    def test_list_is_comma_separated(self, settings: Settings) -> None:
        """bucket_priority takes a comma-separated list."""
        updated = set_value(settings, "bucket_priority", "main, extras,")
        assert updated.bucket_priority == ["main", "extras"]

    def test_empty_cache_path_resets(self, settings: Settings, tmp_path: Path) -> None:
        """An empty cache_path returns to the default."""
        settings.cache_path = tmp_path / "cache"
        assert set_value(settings, "cache_path", "").cache_path is None

    def test_unknown_key(self, settings: Settings) -> None:
        """Unknown keys raise ConfigError."""
        with pytest.raises(ConfigError, match="Invalid config key"):
            set_value(settings, "colour", "red")

    def test_invalid_value(self, settings: Settings) -> None:
        """Invalid values raise ConfigError and leave settings untouched."""
        with pytest.raises(ConfigError, match="Invalid config value"):
            set_value(settings, "parallelism", "many")
        assert settings.parallelism == 2
