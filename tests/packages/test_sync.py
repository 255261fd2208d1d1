"""Tests for dependency synchronization and restart decisions."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from forgectl.config.settings import ForgeSettings
from forgectl.errors import DependencyInstallError
from forgectl.packages.manager import PackageManager
from forgectl.packages.sync import auto_install, sync_dependencies


def settings(**overrides: Any) -> ForgeSettings:
    return ForgeSettings(**overrides)


def seed_manifest(forge_home: Path, deps: dict[str, str]) -> None:
    forge_home.mkdir(parents=True, exist_ok=True)
    (forge_home / "manifest.json").write_text(
        json.dumps({"name": "forge-home", "dependencies": deps})
    )


class TestSyncDependencies:
    def test_all_installed_no_pip_call(
        self, manager: PackageManager, forge_home: Path, fake_pip
    ) -> None:
        seed_manifest(forge_home, {"left-pad": "left-pad"})
        assert sync_dependencies(["left-pad>=1.0"], "auto", manager) is False
        assert fake_pip.calls == []

    def test_installs_missing(self, manager: PackageManager, fake_pip) -> None:
        assert sync_dependencies(["left-pad>=1.0", "right-pad"], "auto", manager) is True
        assert fake_pip.installed == ["left-pad>=1.0", "right-pad"]

    def test_manual_mode_fails_with_hint(self, manager: PackageManager, fake_pip) -> None:
        with pytest.raises(DependencyInstallError) as excinfo:
            sync_dependencies(["left-pad"], "manual", manager)
        assert "left-pad" in excinfo.value.message
        assert "forge module install" in excinfo.value.message
        assert fake_pip.calls == []

    def test_ask_mode_installs(self, manager: PackageManager, fake_pip) -> None:
        assert sync_dependencies(["left-pad"], "ask", manager) is True
        assert fake_pip.installed == ["left-pad"]

    def test_install_failure_propagates(self, manager: PackageManager, fake_pip) -> None:
        fake_pip.fail = True
        with pytest.raises(DependencyInstallError):
            sync_dependencies(["left-pad"], "auto", manager)


class TestAutoInstall:
    def test_no_dependencies(self, manager: PackageManager, fake_pip) -> None:
        assert auto_install(settings(), manager) is False
        assert fake_pip.calls == []

    def test_missing_requests_restart(self, manager: PackageManager) -> None:
        assert auto_install(settings(dependencies=["left-pad>=1.0"]), manager) is True

    def test_restarted_with_deps_present_proceeds(
        self, manager: PackageManager, forge_home: Path, fake_pip
    ) -> None:
        seed_manifest(forge_home, {"left-pad": "left-pad>=1.0"})
        result = auto_install(settings(dependencies=["left-pad>=1.0"], is_restarted=True), manager)
        assert result is False
        assert fake_pip.calls == []

    def test_restarted_and_still_changing_is_fatal(self, manager: PackageManager) -> None:
        with pytest.raises(DependencyInstallError, match="refusing to restart twice"):
            auto_install(settings(dependencies=["left-pad"], is_restarted=True), manager)

    def test_offline_missing_fails_without_pip(self, manager: PackageManager, fake_pip) -> None:
        with pytest.raises(DependencyInstallError, match="Offline mode"):
            auto_install(settings(dependencies=["left-pad"], offline=True), manager)
        assert fake_pip.calls == []

    def test_offline_all_present(self, manager: PackageManager, forge_home: Path) -> None:
        seed_manifest(forge_home, {"left-pad": "left-pad"})
        assert auto_install(settings(dependencies=["left-pad"], offline=True), manager) is False

    def test_failure_wrapped_with_hint(self, manager: PackageManager, fake_pip) -> None:
        fake_pip.fail = True
        with pytest.raises(DependencyInstallError) as excinfo:
            auto_install(settings(dependencies=["left-pad"]), manager)
        assert excinfo.value.message.startswith("Dependency installation failed")
        assert "forge module install" in excinfo.value.message

    def test_manual_failure_not_rewrapped(self, manager: PackageManager) -> None:
        with pytest.raises(DependencyInstallError) as excinfo:
            auto_install(settings(dependencies=["left-pad"], install_mode="manual"), manager)
        assert excinfo.value.message.startswith("Missing dependencies")
