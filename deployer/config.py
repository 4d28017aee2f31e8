"""
config.py

Responsibility: Load the optional `deployer.yaml` project file into a typed model.

A missing default file means "use the defaults", which reproduces the behavior of
the plain deploy script. CLI flags are applied on top by `cli.py`.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from deployer.cross import DEFAULT_TARGET, CrossTarget

DEFAULT_CONFIG_NAME = "deployer.yaml"


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class VerifySpec:
    """Post-deploy probe settings. `url` may reference loaded variables as `{{ NAME }}`."""

    url: str
    method: str = "OPTIONS"
    api_key_env: str | None = None
    expect_status: tuple[int, ...] = (200, 204, 405)
    timeout: float = 30.0


@dataclass(frozen=True)
class DeployConfig:
    project_dir: Path = field(default_factory=Path.cwd)
    env_file: str = ".env"
    target: CrossTarget = field(default_factory=CrossTarget)
    cross_env: dict[str, str] = field(default_factory=dict)
    clean_command: list[str] = field(default_factory=lambda: ["cargo", "clean"])
    build_command: list[str] = field(default_factory=lambda: ["cargo", "lambda", "build", "--release"])
    deploy_command: list[str] = field(default_factory=lambda: ["cargo", "lambda", "deploy"])
    verify: VerifySpec | None = None

    @property
    def env_path(self) -> Path:
        return self.project_dir / self.env_file


def _command(value: Any, key: str, default: list[str]) -> list[str]:
    if value is None:
        return list(default)
    if isinstance(value, str):
        cmd = shlex.split(value)
    elif isinstance(value, list):
        cmd = [str(v) for v in value]
    else:
        raise ConfigError(f"`{key}` must be a string or a list of arguments.")
    if not cmd:
        raise ConfigError(f"`{key}` must not be empty.")
    return cmd


def _parse_verify(raw: Any) -> VerifySpec | None:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ConfigError("`verify` must be an object/mapping when provided.")

    url = str(raw.get("url") or "").strip()
    if not url:
        raise ConfigError("`verify.url` is required when `verify` is set.")

    expect_raw = raw.get("expect_status", [200, 204, 405])
    if isinstance(expect_raw, int):
        expect_raw = [expect_raw]
    if not isinstance(expect_raw, list) or not expect_raw:
        raise ConfigError("`verify.expect_status` must be a status code or a list of them.")
    try:
        expect = tuple(int(s) for s in expect_raw)
        timeout = float(raw.get("timeout", 30))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid number in `verify`: {e}") from e

    api_key_env = raw.get("api_key_env")
    if api_key_env is not None:
        api_key_env = str(api_key_env).strip() or None

    return VerifySpec(
        url=url,
        method=str(raw.get("method") or "OPTIONS").upper(),
        api_key_env=api_key_env,
        expect_status=expect,
        timeout=timeout,
    )


def parse_config(data: dict[str, Any], *, project_dir: Path) -> DeployConfig:
    defaults = DeployConfig(project_dir=project_dir)

    target_triple = str(data.get("target") or DEFAULT_TARGET).strip()
    gnu_triple = str(data.get("gnu_triple") or "").strip()

    cross_raw = data.get("cross_env") or {}
    if not isinstance(cross_raw, dict):
        raise ConfigError("`cross_env` must be an object/mapping when provided.")

    return DeployConfig(
        project_dir=project_dir,
        env_file=str(data.get("env_file") or defaults.env_file),
        target=CrossTarget(triple=target_triple, gnu_triple=gnu_triple),
        cross_env={str(k): str(v) for k, v in cross_raw.items()},
        clean_command=_command(data.get("clean_command"), "clean_command", defaults.clean_command),
        build_command=_command(data.get("build_command"), "build_command", defaults.build_command),
        deploy_command=_command(data.get("deploy_command"), "deploy_command", defaults.deploy_command),
        verify=_parse_verify(data.get("verify")),
    )


def load_config(config_path: str | Path | None = None, *, project_dir: str | Path | None = None) -> DeployConfig:
    """
    Load `config_path`, or `<project_dir>/deployer.yaml` when no path is given.

    An explicit path that does not exist is an error; a missing default file is not.
    """
    root = Path(project_dir).resolve() if project_dir else Path.cwd()

    if config_path is None:
        path = root / DEFAULT_CONFIG_NAME
        if not path.exists():
            return DeployConfig(project_dir=root)
    else:
        path = Path(config_path)
        if not path.exists():
            raise ConfigError(f"Config file does not exist: {path}")

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("Config must be a mapping/object at the top level.")

    return parse_config(data, project_dir=root)
