import os
import subprocess
from pathlib import Path
from typing import Any

import pytest

from deployer import cli


@pytest.fixture
def recorded(monkeypatch: pytest.MonkeyPatch) -> list[list[str]]:
    calls: list[list[str]] = []

    def _run(cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
        calls.append(list(cmd))
        return subprocess.CompletedProcess(cmd, 0)

    monkeypatch.setattr(subprocess, "run", _run)
    return calls


@pytest.fixture
def clean_environ(monkeypatch: pytest.MonkeyPatch) -> None:
    # Stages write into os.environ; snapshot it so every test starts clean.
    monkeypatch.setattr(os, "environ", os.environ.copy())


def test_deploy_happy_path(
    tmp_path: Path, recorded: list[list[str]], clean_environ: None, capsys: pytest.CaptureFixture[str]
) -> None:
    (tmp_path / ".env").write_text("AWS_REGION=ap-northeast-1\n", encoding="utf-8")

    rc = cli.main(["deploy", "--project-dir", str(tmp_path)])

    assert rc == 0
    assert recorded[-1] == ["cargo", "lambda", "deploy"]
    out = capsys.readouterr().out.splitlines()
    assert out[-1] == "Deployment completed successfully!"
    assert os.environ["AWS_REGION"] == "ap-northeast-1"


def test_deploy_without_env_file_fails_before_deploy(
    tmp_path: Path, recorded: list[list[str]], clean_environ: None, capsys: pytest.CaptureFixture[str]
) -> None:
    rc = cli.main(["deploy", "--project-dir", str(tmp_path), "--skip-clean"])

    assert rc == 1
    assert recorded == [["cargo", "lambda", "build", "--release"]]
    err = capsys.readouterr().err
    assert err.startswith("Error: Stage 'load-env' failed")


def test_build_with_target_override(tmp_path: Path, recorded: list[list[str]], clean_environ: None) -> None:
    rc = cli.main(["build", "--project-dir", str(tmp_path), "--target", "x86_64-unknown-linux-gnu"])

    assert rc == 0
    assert recorded == [["cargo", "clean"], ["cargo", "lambda", "build", "--release"]]
    assert os.environ["PKG_CONFIG_PATH"] == "/usr/lib/x86_64-linux-gnu/pkgconfig"


def test_env_lists_names_without_values(
    tmp_path: Path, clean_environ: None, capsys: pytest.CaptureFixture[str]
) -> None:
    (tmp_path / ".env.local").write_text("# creds\nAPI_KEY=topsecret\nEXPO_ACCESS_TOKEN=tok\n", encoding="utf-8")

    rc = cli.main(["env", "--project-dir", str(tmp_path), "--env-file", ".env.local"])

    assert rc == 0
    out = capsys.readouterr().out
    assert out.splitlines() == ["✓ AWS credentials loaded from .env.local", "API_KEY", "EXPO_ACCESS_TOKEN"]
    assert "topsecret" not in out


def test_env_runs_command_with_loaded_environment(
    tmp_path: Path, clean_environ: None, monkeypatch: pytest.MonkeyPatch
) -> None:
    (tmp_path / ".env").write_text("API_KEY=k\n", encoding="utf-8")
    seen: dict[str, Any] = {}

    def _call(cmd: list[str], **kwargs: Any) -> int:
        seen["cmd"] = cmd
        seen["env"] = kwargs["env"]
        return 3

    monkeypatch.setattr(subprocess, "call", _call)

    rc = cli.main(["env", "--project-dir", str(tmp_path), "--", "cargo", "lambda", "invoke"])

    assert rc == 3
    assert seen["cmd"] == ["cargo", "lambda", "invoke"]
    assert seen["env"]["API_KEY"] == "k"


def test_env_missing_file(tmp_path: Path, clean_environ: None, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["env", "--project-dir", str(tmp_path)]) == 1
    assert "not found" in capsys.readouterr().err


def test_bad_config_reports_error(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    (tmp_path / "deployer.yaml").write_text("- nope\n", encoding="utf-8")
    assert cli.main(["build", "--project-dir", str(tmp_path)]) == 1
    assert "mapping" in capsys.readouterr().err


def test_env_with_invalid_utf8_reports_error(
    tmp_path: Path, clean_environ: None, capsys: pytest.CaptureFixture[str]
) -> None:
    (tmp_path / ".env").write_bytes(b"A=\xff\xfe\n")
    assert cli.main(["env", "--project-dir", str(tmp_path)]) == 1
    assert capsys.readouterr().err.startswith("Error: Cannot read")


def test_non_executable_command_reports_error(
    tmp_path: Path, clean_environ: None, capsys: pytest.CaptureFixture[str]
) -> None:
    script = tmp_path / "notexec"
    script.write_text("#!/bin/sh\nexit 0\n", encoding="utf-8")
    script.chmod(0o644)
    (tmp_path / "deployer.yaml").write_text(f"clean_command: ['{script}']\n", encoding="utf-8")

    assert cli.main(["build", "--project-dir", str(tmp_path)]) == 1
    err = capsys.readouterr().err
    assert "Stage 'clean' failed: Cannot run" in err


def test_missing_project_dir_reports_error(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    rc = cli.main(["build", "--project-dir", str(tmp_path / "absent")])
    assert rc == 1
    assert "Project directory does not exist" in capsys.readouterr().err
