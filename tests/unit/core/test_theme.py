"""Unit tests for the console theme."""

# pyright: reportPrivateUsage=false

from pathlib import Path
from unittest.mock import patch

import pytest
from bucketctl.core.theme import (
    ThemeColors,
    _read_colors,
    get_bundled_theme_path,
    get_rich_theme,
    get_user_theme_path,
    load_theme,
)
from rich.theme import Theme


class TestThemeColors:
    """Tests for the ThemeColors model."""

    def test_bundled_matches_defaults(self) -> None:
        """The bundled theme file declares every default color."""
        assert ThemeColors(**_read_colors(Path(get_bundled_theme_path()))) == ThemeColors()
        assert set(_read_colors(Path(get_bundled_theme_path()))) == set(ThemeColors.model_fields)

    @pytest.mark.parametrize("color", ["#abc", "#A1B2C3", " #000000 "])
    def test_valid_colors(self, color: str) -> None:
        """Short and long hex colors are accepted."""
        assert ThemeColors(muted=color).muted == color.strip()

    @pytest.mark.parametrize(
        ("color", "message"),
        [
            ("ffffff", "must start with '#'"),
            ("#gggggg", "invalid hex color"),
            ("#abcd", "invalid hex color"),
        ],
    )
    def test_invalid_colors(self, color: str, message: str) -> None:
        """Malformed colors are rejected."""
        with pytest.raises(ValueError, match=message):
            ThemeColors(text=color)

    def test_extra_fields_forbidden(self) -> None:
        """Unknown color names are rejected."""
        with pytest.raises(ValueError):
            ThemeColors(unknown_field="#ffffff")  # type: ignore[call-arg]


class TestReadColors:
    """Tests for reading theme files."""

    def test_reads_colors_table(self, tmp_path: Path) -> None:
        """String values of the colors table are returned."""
        theme_file = tmp_path / "theme.toml"
        theme_file.write_text('[colors]\ntext = "#000000"\nwidth = 3\n')

        assert _read_colors(theme_file) == {"text": "#000000"}

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing file has no colors."""
        assert _read_colors(tmp_path / "nonexistent.toml") == {}

    def test_invalid_toml(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """A malformed file is reported and ignored."""
        theme_file = tmp_path / "theme.toml"
        theme_file.write_text("not valid [ toml syntax")

        assert _read_colors(theme_file) == {}
        assert "Ignoring theme file" in capsys.readouterr().err

    def test_colors_not_a_table(self, tmp_path: Path) -> None:
        """A non-table colors key is ignored."""
        theme_file = tmp_path / "theme.toml"
        theme_file.write_text('colors = "red"\n')

        assert _read_colors(theme_file) == {}


class TestLoadTheme:
    """Tests for load_theme function."""

    def test_user_theme_path_under_config_dir(self, isolated_home: Path, tmp_path: Path) -> None:
        """The user theme lives next to config.toml."""
        assert get_user_theme_path() == tmp_path / "config" / "bucketctl" / "theme.toml"

    def test_user_theme_overrides_bundled(self, tmp_path: Path) -> None:
        """User theme overrides bundled theme values key by key."""
        user_theme = tmp_path / "theme.toml"
        user_theme.write_text('[colors]\npackage_held = "#ff0000"\n')

        with patch("bucketctl.core.theme.get_user_theme_path", return_value=user_theme):
            colors = load_theme()

        assert colors.package_held == "#ff0000"
        assert colors.success == "#03b971"

    def test_invalid_override_discards_all_overrides(self, tmp_path: Path) -> None:
        """One invalid override falls back to the bundled palette."""
        user_theme = tmp_path / "theme.toml"
        user_theme.write_text('[colors]\nheader = "red"\npackage_held = "#ff0000"\n')

        with patch("bucketctl.core.theme.get_user_theme_path", return_value=user_theme):
            colors = load_theme()

        assert colors == ThemeColors()


class TestGetRichTheme:
    """Tests for get_rich_theme function."""

    def test_includes_table_styles(self) -> None:
        """Theme includes the styles used by package and plan tables."""
        theme = get_rich_theme(ThemeColors())

        assert isinstance(theme, Theme)
        for style in ("bold_header", "package.name", "package.bucket", "added", "removed"):
            assert style in theme.styles

    def test_progress_styles_follow_palette(self) -> None:
        """Download progress bars use the palette's progress colors."""
        theme = get_rich_theme(ThemeColors(progress_bar="#123456"))

        assert theme.styles["bar.complete"].color is not None
        assert theme.styles["bar.complete"].color.name == "#123456"
