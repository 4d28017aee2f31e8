"""
envfile.py

Responsibility: Load a `.env` file of `KEY=VALUE` lines into the process environment.

Parsing is delegated to python-dotenv (`dotenv_values`), which skips blank and
`#` lines, accepts a leading `export `, splits on the first `=` and removes
surrounding quotes. Variable interpolation is disabled so values are taken as written.

Values are never logged; only names are.
"""

from __future__ import annotations

import io
import logging
import os
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass
from pathlib import Path

from dotenv import dotenv_values

log = logging.getLogger(__name__)


class EnvFileError(ValueError):
    pass


@dataclass(frozen=True)
class EnvAssignment:
    """A single `KEY=VALUE` pair read from an env file."""

    key: str
    value: str


def _to_assignments(values: Mapping[str, str | None]) -> list[EnvAssignment]:
    out: list[EnvAssignment] = []
    for k, v in values.items():
        # A bare `KEY` line has no value; there is nothing to export.
        if v is None:
            log.warning("Skipping %s: expected KEY=VALUE", k)
            continue
        out.append(EnvAssignment(key=k, value=v))
    return out


def parse_env_text(text: str) -> list[EnvAssignment]:
    """
    Parse env file contents into assignments, in file order.

    A name that appears more than once yields a single assignment with the last value.
    """
    return _to_assignments(dotenv_values(stream=io.StringIO(text), interpolate=False))


def parse_env_file(env_path: str | Path) -> list[EnvAssignment]:
    path = Path(env_path)
    if not path.is_file():
        raise EnvFileError(f"{path.name} file not found: {path}")
    try:
        values = dotenv_values(path, interpolate=False, encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise EnvFileError(f"Cannot read {path}: {e}") from e
    return _to_assignments(values)


def load_env_file(
    env_path: str | Path,
    *,
    environ: MutableMapping[str, str] | None = None,
    override: bool = True,
) -> list[EnvAssignment]:
    """
    Parse `env_path` and export every assignment into `environ`.

    `environ` defaults to `os.environ`, so child processes started afterwards
    inherit the values. With `override=False`, names that are already set keep
    their current value. Returns the assignments that were parsed.
    """
    target = os.environ if environ is None else environ
    assignments = parse_env_file(env_path)
    for a in assignments:
        if not override and a.key in target:
            log.debug("Keeping existing value for %s", a.key)
            continue
        target[a.key] = a.value
    log.debug("Loaded %d variable(s) from %s", len(assignments), env_path)
    return assignments
