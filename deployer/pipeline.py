"""
pipeline.py

Responsibility: Run the clean -> build -> load env -> deploy sequence.

Stages run strictly in order. Each prints a fixed status line once it succeeds,
and the first failure stops the run; nothing after it is attempted.
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Callable, MutableMapping
from dataclasses import dataclass
from pathlib import Path

from deployer.config import DeployConfig
from deployer.cross import CrossEnvError, render_cross_env
from deployer.envfile import EnvFileError, load_env_file
from deployer.verify import VerifyError, probe_from_spec

log = logging.getLogger(__name__)


class CommandError(RuntimeError):
    def __init__(self, message: str, returncode: int | None = None) -> None:
        super().__init__(message)
        self.returncode = returncode


class PipelineError(RuntimeError):
    def __init__(self, stage: str, cause: Exception) -> None:
        super().__init__(f"Stage '{stage}' failed: {cause}")
        self.stage = stage


def run_command(cmd: list[str], *, cwd: Path, env: MutableMapping[str, str] | None = None) -> None:
    """
    Run an external command with inherited stdout/stderr, raising CommandError on failure.
    """
    log.debug("Running %s in %s", " ".join(cmd), cwd)
    try:
        subprocess.run(cmd, cwd=str(cwd), env=dict(env) if env is not None else None, check=True)
    except FileNotFoundError as e:
        raise CommandError(f"Command not found: {cmd[0]}") from e
    except OSError as e:
        raise CommandError(f"Cannot run {cmd[0]}: {e}") from e
    except subprocess.CalledProcessError as e:
        raise CommandError(f"Command failed ({e.returncode}): {' '.join(cmd)}", e.returncode) from e


@dataclass(frozen=True)
class Stage:
    name: str
    action: Callable[[], None]
    done_message: str


class Pipeline:
    def __init__(self, stages: list[Stage], *, echo: Callable[[str], None] = print) -> None:
        self._stages = list(stages)
        self._echo = echo

    @property
    def stage_names(self) -> list[str]:
        return [s.name for s in self._stages]

    def run(self) -> None:
        for stage in self._stages:
            log.debug("Starting stage %s", stage.name)
            try:
                stage.action()
            except (CommandError, EnvFileError, CrossEnvError, VerifyError) as e:
                raise PipelineError(stage.name, e) from e
            self._echo(stage.done_message)


def build_stages(
    config: DeployConfig,
    *,
    environ: MutableMapping[str, str] | None = None,
    clean: bool = True,
    deploy: bool = True,
    verify: bool = True,
) -> list[Stage]:
    """
    Assemble the stages for one run.

    `environ` is the environment the stages mutate and hand to child processes;
    it defaults to `os.environ`, as in the shell script this replaces.
    With `deploy=False` only the clean and build stages are returned.
    """
    env = os.environ if environ is None else environ
    cwd = config.project_dir

    def _clean() -> None:
        run_command(config.clean_command, cwd=cwd, env=env)

    def _build() -> None:
        cross = render_cross_env(config.target, config.cross_env)
        for name in cross:
            log.debug("Exporting %s for %s", name, config.target.triple)
        env.update(cross)
        run_command(config.build_command, cwd=cwd, env=env)

    def _load_env() -> None:
        load_env_file(config.env_path, environ=env)

    def _deploy() -> None:
        run_command(config.deploy_command, cwd=cwd, env=env)

    def _verify() -> None:
        if config.verify is None:
            return
        probe = probe_from_spec(config.verify, env)
        result = probe.check(config.verify.expect_status)
        log.info("Probe of %s returned %d", probe.url, result.status_code)

    stages: list[Stage] = []
    if clean:
        stages.append(Stage("clean", _clean, "Clean completed."))
    stages.append(Stage("build", _build, "Build completed successfully!"))
    if not deploy:
        return stages

    stages.append(Stage("load-env", _load_env, "AWS credentials loaded."))
    stages.append(Stage("deploy", _deploy, "Deployment completed successfully!"))
    if verify and config.verify is not None:
        stages.append(Stage("verify", _verify, "Verification completed successfully!"))
    return stages
