"""End-to-end invocations of run(): config, resolution, install, restart, dispatch.

Each test lays out a project and shared tree on disk and runs the CLI
in-process with pip faked out.
"""

from __future__ import annotations

import importlib
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from forgectl.cli import run
from forgectl.packages.manager import PackageManager

if TYPE_CHECKING:
    from tests.conftest import FakePip

GREET = """
import click


class _Hello:
    description = "Say hi"

    def execute(self, options, args, context):
        click.echo("hi " + " ".join(args) if args else "hi")


commands = {"hello": _Hello}
"""

LEFT_PAD_USER = """
import click
import left_pad


class _Pad:
    description = "Pad a value"

    def execute(self, options, args, context):
        click.echo(left_pad.pad(args[0]))


commands = {"pad": _Pad}
"""


@pytest.fixture
def in_project(project: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(project)
    return project


def configure(project: Path, text: str) -> None:
    (project / ".forge" / "config.yml").write_text(text)


class TestDispatch:
    def test_group_command_from_local_module(
        self,
        in_project: Path,
        manager: PackageManager,
        write_module,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        write_module(in_project / ".forge", "greet.py", GREET)
        configure(in_project, "modules:\n  - greet\n")
        assert run(["greet", "hello"], manager=manager) == 0
        assert capsys.readouterr().out == "hi\n"

    def test_mapping_bound_by_name(
        self,
        in_project: Path,
        manager: PackageManager,
        write_module,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        write_module(
            in_project / ".forge",
            "greet.py",
            """
def _say(options, args, context):
    print("hi")


hello = {"description": "says hi", "execute": _say}
""",
        )
        configure(in_project, "modules:\n  - greet\n")
        assert run(["greet", "hello"], manager=manager) == 0
        assert capsys.readouterr().out == "hi\n"

    def test_variadic_args_reach_execute(
        self,
        in_project: Path,
        manager: PackageManager,
        write_module,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        write_module(in_project / ".forge", "greet.py", GREET)
        configure(in_project, "modules:\n  - greet\n")
        assert run(["-q", "greet", "hello", "Ada", "--loud"], manager=manager) == 0
        assert capsys.readouterr().out == "hi Ada --loud\n"

    def test_modules_sharing_a_group_merge(
        self,
        in_project: Path,
        manager: PackageManager,
        write_module,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        for name, command in (("aws_s3", "s3_sync"), ("aws_ec2", "ec2_list")):
            write_module(
                in_project / ".forge",
                f"{name}.py",
                f"""
import click

forge_module = {{"group": "aws", "description": "AWS helpers"}}


class {command}:
    description = "{command}"

    def execute(self, options, args, context):
        click.echo("{command}")
""",
            )
        configure(in_project, "modules:\n  - aws_s3\n  - aws_ec2\n")
        assert run(["aws", "s3-sync"], manager=manager) == 0
        assert run(["aws", "ec2-list"], manager=manager) == 0
        assert capsys.readouterr().out == "s3_sync\nec2_list\n"

    def test_top_level_module(
        self,
        in_project: Path,
        manager: PackageManager,
        write_module,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        write_module(
            in_project / ".forge",
            "tools/deploy.py",
            """
import click

forge_module = {"group": False}


class _Deploy:
    description = "Deploy"

    def execute(self, options, args, context):
        click.echo(context.settings["target"])


commands = {"deploy": _Deploy}
""",
        )
        configure(
            in_project,
            "modules:\n  - ./tools/deploy.py\nsettings:\n  deploy:\n    target: prod\n",
        )
        assert run(["deploy"], manager=manager) == 0
        assert capsys.readouterr().out == "prod\n"

    def test_local_module_shadows_shared(
        self,
        in_project: Path,
        manager: PackageManager,
        forge_home: Path,
        write_module,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        write_module(in_project / ".forge", "greet.py", GREET)
        write_module(
            forge_home / "site-packages",
            "greet.py",
            GREET.replace('"hi"', '"shared"'),
        )
        configure(in_project, "modules:\n  - greet\n")
        assert run(["greet", "hello"], manager=manager) == 0
        assert capsys.readouterr().out == "hi\n"


class TestFailures:
    def test_missing_module(
        self,
        in_project: Path,
        manager: PackageManager,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        configure(in_project, "modules:\n  - nowhere\n")
        assert run(["home"], manager=manager) == 1
        err = capsys.readouterr().err
        assert "ERROR:" in err
        assert "nowhere" in err

    def test_version_works_in_broken_project(
        self,
        in_project: Path,
        manager: PackageManager,
        fake_pip: FakePip,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        configure(in_project, "modules:\n  - nowhere\ndependencies:\n  - left-pad\n")
        assert run(["--version"], manager=manager) == 0
        assert run(["-d", "--version"], manager=manager) == 0
        assert "forge" in capsys.readouterr().out
        assert fake_pip.calls == []

        assert run(["home"], manager=manager) == 42
        assert fake_pip.installed == ["left-pad"]

    def test_module_raising_on_import(
        self,
        in_project: Path,
        manager: PackageManager,
        write_module,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        write_module(in_project / ".forge", "broken.py", "raise RuntimeError('bad module')\n")
        configure(in_project, "modules:\n  - broken\n")
        assert run(["home"], manager=manager) == 1
        assert "bad module" in capsys.readouterr().err

    def test_command_raising(
        self,
        in_project: Path,
        manager: PackageManager,
        write_module,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        write_module(
            in_project / ".forge",
            "greet.py",
            GREET.replace('click.echo("hi " + " ".join(args) if args else "hi")', "1 / 0"),
        )
        configure(in_project, "modules:\n  - greet\n")
        assert run(["greet", "hello"], manager=manager) == 1
        assert "Command failed: greet hello" in capsys.readouterr().err

    def test_die_exits_one(
        self,
        in_project: Path,
        manager: PackageManager,
        write_module,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        write_module(
            in_project / ".forge",
            "greet.py",
            """
from forgectl.command import die


class _Hello:
    description = "Say hi"

    def execute(self, options, args, context):
        die("no greeting today")


commands = {"hello": _Hello}
""",
        )
        configure(in_project, "modules:\n  - greet\n")
        assert run(["greet", "hello"], manager=manager) == 1
        assert "ERROR: no greeting today" in capsys.readouterr().err


class TestDependencies:
    def test_install_requests_restart_then_runs(
        self,
        in_project: Path,
        manager: PackageManager,
        fake_pip: FakePip,
        write_module,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        fake_pip.packages["left-pad"] = {
            "left_pad.py": "def pad(value):\n    return value.rjust(5, '.')\n"
        }
        write_module(in_project / ".forge", "text.py", LEFT_PAD_USER)
        configure(in_project, "modules:\n  - text\ndependencies:\n  - left-pad\n")

        assert run(["text", "pad", "ab"], manager=manager) == 42
        assert fake_pip.installed == ["left-pad"]

        monkeypatch.setenv("FORGE_RESTARTED", "1")
        importlib.invalidate_caches()
        assert run(["text", "pad", "ab"], manager=manager) == 0
        assert capsys.readouterr().out == "...ab\n"
        assert fake_pip.installed == ["left-pad"]

    def test_shared_module_installed_as_dependency(
        self,
        in_project: Path,
        manager: PackageManager,
        fake_pip: FakePip,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        fake_pip.packages["forge-standard"] = {
            "forge_standard/__init__.py": "",
            "forge_standard/hello.py": GREET,
        }
        configure(
            in_project,
            "modules:\n  - forge_standard/hello\ndependencies:\n  - forge-standard\n",
        )
        assert run(["hello", "hello"], manager=manager) == 42

        monkeypatch.setenv("FORGE_RESTARTED", "1")
        importlib.invalidate_caches()
        assert run(["hello", "hello"], manager=manager) == 0
        assert capsys.readouterr().out == "hi\n"

    def test_all_installed_skips_pip(
        self,
        in_project: Path,
        manager: PackageManager,
        fake_pip: FakePip,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        manager.install("left-pad>=1.0")
        fake_pip.calls.clear()
        configure(in_project, "dependencies:\n  - left-pad>=1.0\n")
        assert run(["home"], manager=manager) == 0
        assert fake_pip.calls == []

    def test_change_after_restart_is_an_error(
        self,
        in_project: Path,
        manager: PackageManager,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        monkeypatch.setenv("FORGE_RESTARTED", "1")
        configure(in_project, "dependencies:\n  - left-pad\n")
        assert run(["home"], manager=manager) == 1
        assert "refusing to restart twice" in capsys.readouterr().err

    def test_manual_mode_reports_then_module_install_fixes(
        self,
        in_project: Path,
        manager: PackageManager,
        fake_pip: FakePip,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        configure(in_project, "installMode: manual\ndependencies:\n  - left-pad\n")

        assert run(["home"], manager=manager) == 1
        err = capsys.readouterr().err
        assert "Missing dependencies" in err
        assert "Run: forge module install" in err
        assert fake_pip.calls == []

        assert run(["module", "install"], manager=manager) == 0
        assert "Installed left-pad" in capsys.readouterr().out

        assert run(["home"], manager=manager) == 0

    def test_offline_with_missing_dependency(
        self,
        in_project: Path,
        manager: PackageManager,
        fake_pip: FakePip,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        configure(in_project, "offline: true\ndependencies:\n  - left-pad\n")
        assert run(["home"], manager=manager) == 1
        assert "Offline mode" in capsys.readouterr().err
        assert fake_pip.calls == []

    def test_pip_failure(
        self,
        in_project: Path,
        manager: PackageManager,
        fake_pip: FakePip,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        fake_pip.fail = True
        configure(in_project, "dependencies:\n  - left-pad\n")
        assert run(["home"], manager=manager) == 1
        err = capsys.readouterr().err
        assert "Dependency installation failed" in err
        assert "no matching distribution" in err


class TestModuleCommands:
    def test_list(
        self,
        in_project: Path,
        manager: PackageManager,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        assert run(["module", "list"], manager=manager) == 0
        assert capsys.readouterr().out == "No dependencies installed.\n"
        manager.install("left-pad>=1.0")
        assert run(["module", "list"], manager=manager) == 0
        assert capsys.readouterr().out == "left-pad  left-pad>=1.0\n"

    def test_install_with_nothing_declared(
        self,
        in_project: Path,
        manager: PackageManager,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        assert run(["module", "install"], manager=manager) == 0
        assert capsys.readouterr().out == "No dependencies declared.\n"

    def test_alias(
        self,
        in_project: Path,
        manager: PackageManager,
        forge_home: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        assert run(["module", "alias"], manager=manager) == 0
        out = capsys.readouterr().out.strip()
        link, target = out.split(" -> ")
        assert Path(link).is_symlink()
        assert Path(link).is_relative_to(forge_home / "site-packages" / "_forge_projects")
        assert target == str(in_project.resolve() / ".forge")

    def test_alias_outside_project(
        self, manager: PackageManager, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert run(["module", "alias"], manager=manager) == 1
        assert "Not inside a forge project" in capsys.readouterr().err
