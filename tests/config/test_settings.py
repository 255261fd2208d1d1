"""Tests for ForgeSettings: CLI flags, env vars, and layered config files."""

from __future__ import annotations

from pathlib import Path

import pytest

from forgectl.config.models import BootstrapConfig
from forgectl.config.settings import ForgeSettings, get_setting
from forgectl.errors import ConfigError


class TestForgeSettingsDefaults:
    def test_all_defaults(self, tmp_path: Path) -> None:
        settings = ForgeSettings.from_bootstrap(cwd=tmp_path)
        assert settings.project_root is None
        assert settings.modules == []
        assert settings.install_mode == "auto"
        assert settings.offline is False
        assert settings.effective_log_level == "info"

    def test_frozen(self, tmp_path: Path) -> None:
        settings = ForgeSettings.from_bootstrap(cwd=tmp_path)
        with pytest.raises(Exception):
            settings.offline = True  # type: ignore[misc]


class TestLayeredSource:
    def test_loads_project_config(self, project: Path) -> None:
        (project / ".forge" / "config.yml").write_text(
            "modules:\n  - greet\ndependencies:\n  - left-pad>=1.0\ninstallMode: manual\n"
        )
        settings = ForgeSettings.from_bootstrap(cwd=project)
        assert settings.project_root == project.resolve()
        assert settings.forge_dir == project.resolve() / ".forge"
        assert settings.modules == ["greet"]
        assert settings.dependencies == ["left-pad>=1.0"]
        assert settings.install_mode == "manual"

    def test_unknown_keys_ignored(self, project: Path) -> None:
        (project / ".forge" / "config.yml").write_text("defaultCommand: greet\n")
        assert ForgeSettings.from_bootstrap(cwd=project).modules == []

    def test_invalid_value_is_config_error(self, project: Path) -> None:
        (project / ".forge" / "config.yml").write_text("installMode: sometimes\n")
        with pytest.raises(ConfigError, match="Invalid configuration"):
            ForgeSettings.from_bootstrap(cwd=project)


class TestPriority:
    def test_env_overrides_file(self, project: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (project / ".forge" / "config.yml").write_text("installMode: manual\n")
        monkeypatch.setenv("FORGE_INSTALL_MODE", "auto")
        assert ForgeSettings.from_bootstrap(cwd=project).install_mode == "auto"

    def test_cli_overrides_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FORGE_LOG_FORMAT", "pretty")
        settings = ForgeSettings.from_bootstrap(BootstrapConfig(log_format="json"), cwd=tmp_path)
        assert settings.log_format == "json"

    def test_default_flags_do_not_mask_env(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("FORGE_DEBUG", "true")
        settings = ForgeSettings.from_bootstrap(BootstrapConfig(), cwd=tmp_path)
        assert settings.debug is True

    def test_root_flag(self, project: Path, tmp_path: Path) -> None:
        settings = ForgeSettings.from_bootstrap(BootstrapConfig(root=str(project)), cwd=tmp_path)
        assert settings.project_root == project.resolve()


class TestEffectiveLogLevel:
    @pytest.mark.parametrize(
        ("flags", "level"),
        [
            ({"debug": True}, "debug"),
            ({"quiet": True}, "warn"),
            ({"silent": True}, "silent"),
            ({"debug": True, "log_level": "error"}, "error"),
        ],
    )
    def test_derived(self, tmp_path: Path, flags: dict, level: str) -> None:
        settings = ForgeSettings.from_bootstrap(BootstrapConfig(**flags), cwd=tmp_path)
        assert settings.effective_log_level == level


class TestGetSetting:
    def test_reads_command_slice(self, project: Path) -> None:
        (project / ".forge" / "config.yml").write_text(
            "settings:\n  basic.greet:\n    name: World\n"
        )
        settings = ForgeSettings.from_bootstrap(cwd=project)
        assert get_setting(settings, "basic.greet", "name") == "World"
        assert get_setting(settings, "basic.greet", "missing", "dflt") == "dflt"
        assert get_setting(settings, "other", "name") is None
