"""
verify.py

Responsibility: Probe the deployed function URL once after a deploy.

The function sends push notifications on GET and POST, so probes default to
OPTIONS. A 403 means the URL is live but the API key was wrong or missing.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

import requests
from jinja2 import Environment, StrictUndefined, TemplateError

from deployer.config import VerifySpec


class VerifyError(RuntimeError):
    pass


@dataclass(frozen=True)
class ProbeResult:
    status_code: int


class FunctionProbe:
    def __init__(self, url: str, *, method: str = "OPTIONS", api_key: str | None = None, timeout: float = 30.0) -> None:
        if not url.strip():
            raise VerifyError("Function URL is required.")
        self._url = url
        self._method = method.upper()
        self._api_key = api_key
        self._timeout = timeout

    @property
    def url(self) -> str:
        return self._url

    def _headers(self) -> dict[str, str]:
        headers = {"User-Agent": "lambda-deployer"}
        if self._api_key:
            headers["x-api-key"] = self._api_key
        return headers

    def probe(self) -> int:
        try:
            r = requests.request(self._method, self._url, headers=self._headers(), timeout=self._timeout)
        except requests.RequestException as e:
            raise VerifyError(f"Request to {self._url} failed: {e}") from e
        return r.status_code

    def check(self, expect_status: tuple[int, ...] = (200,)) -> ProbeResult:
        status = self.probe()
        if status not in expect_status:
            hint = " (check the API key)" if status == 403 else ""
            raise VerifyError(
                f"{self._method} {self._url} returned {status}, expected one of {list(expect_status)}{hint}"
            )
        return ProbeResult(status_code=status)


def probe_from_spec(spec: VerifySpec, environ: Mapping[str, str]) -> FunctionProbe:
    """
    Build a probe from config, rendering the URL against the current environment.
    """
    env = Environment(autoescape=False, undefined=StrictUndefined)
    try:
        url = env.from_string(spec.url).render(dict(environ))
    except TemplateError as e:
        raise VerifyError(f"Failed rendering verify URL {spec.url!r}: {e}") from e

    api_key = environ.get(spec.api_key_env) if spec.api_key_env else None
    return FunctionProbe(url, method=spec.method, api_key=api_key, timeout=spec.timeout)
