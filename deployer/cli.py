"""
cli.py

Responsibility: CLI entrypoint for lambda-deployer.

Commands:
- `deploy`: clean, cross-compile build, load `.env`, `cargo lambda deploy` (optionally verify)
- `build`:  clean and build only
- `env`:    load `.env`; with a trailing command, run it inside the loaded environment

This module should orchestrate behavior but keep concerns isolated:
- Env file parsing: `envfile.py`
- Project config: `config.py`
- Stage sequencing and subprocesses: `pipeline.py`
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import os
import subprocess
import sys

from deployer.config import ConfigError, DeployConfig, load_config
from deployer.cross import CrossTarget
from deployer.envfile import EnvFileError, load_env_file
from deployer.pipeline import Pipeline, PipelineError, build_stages

log = logging.getLogger(__name__)


class CLIError(RuntimeError):
    pass


def _resolve_config(args: argparse.Namespace) -> DeployConfig:
    config = load_config(args.config, project_dir=args.project_dir)
    if not config.project_dir.is_dir():
        raise CLIError(f"Project directory does not exist: {config.project_dir}")

    # CLI overrides
    overrides: dict[str, object] = {}
    if args.env_file:
        overrides["env_file"] = args.env_file
    if getattr(args, "target", None):
        overrides["target"] = CrossTarget(triple=args.target)
    return dataclasses.replace(config, **overrides) if overrides else config


def deploy_cmd(args: argparse.Namespace) -> int:
    config = _resolve_config(args)
    stages = build_stages(
        config,
        clean=not bool(args.skip_clean),
        verify=not bool(args.skip_verify),
    )
    Pipeline(stages).run()
    return 0


def build_cmd(args: argparse.Namespace) -> int:
    config = _resolve_config(args)
    Pipeline(build_stages(config, clean=not bool(args.skip_clean), deploy=False)).run()
    return 0


def env_cmd(args: argparse.Namespace) -> int:
    config = _resolve_config(args)
    assignments = load_env_file(config.env_path)

    command = list(args.command or [])
    if command and command[0] == "--":
        command = command[1:]

    if not command:
        print(f"✓ AWS credentials loaded from {config.env_file}")
        for a in assignments:
            print(a.key)
        return 0

    log.debug("Running %s with %d loaded variable(s)", command[0], len(assignments))
    try:
        return subprocess.call(command, cwd=str(config.project_dir), env=os.environ.copy())
    except FileNotFoundError as e:
        raise CLIError(f"Command not found: {command[0]}") from e
    except OSError as e:
        raise CLIError(f"Cannot run {command[0]}: {e}") from e


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("--project-dir", default=None, help="Project root containing Cargo.toml (default: cwd)")
    p.add_argument("--config", default=None, help="Config file (default: <project-dir>/deployer.yaml if present)")
    p.add_argument("--env-file", default=None, help="Env file relative to the project dir (default: .env)")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="deployer", description="Build and deploy a Rust Lambda function with cargo lambda")
    sub = p.add_subparsers(dest="command_name", required=True)

    d = sub.add_parser("deploy", help="Clean, build, load .env and deploy")
    _add_common(d)
    d.add_argument("--target", default=None, help="Rust target triple (default: aarch64-unknown-linux-gnu)")
    d.add_argument("--skip-clean", action="store_true", help="Do not run the clean command first")
    d.add_argument("--skip-verify", action="store_true", help="Do not probe the function URL after deploy")
    d.set_defaults(func=deploy_cmd)

    b = sub.add_parser("build", help="Clean and build only")
    _add_common(b)
    b.add_argument("--target", default=None, help="Rust target triple (default: aarch64-unknown-linux-gnu)")
    b.add_argument("--skip-clean", action="store_true", help="Do not run the clean command first")
    b.set_defaults(func=build_cmd)

    e = sub.add_parser("env", help="Load .env and optionally run a command with it")
    _add_common(e)
    e.add_argument("command", nargs=argparse.REMAINDER, help="Command to run after `--`")
    e.set_defaults(func=env_cmd)

    return p


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    )

    try:
        return int(args.func(args))
    except (CLIError, ConfigError, EnvFileError, PipelineError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
