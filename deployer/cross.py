"""
cross.py

Responsibility: Compute the environment needed to cross-compile for a Lambda target.

`openssl-sys` locates OpenSSL through pkg-config and through per-target
`<TRIPLE>_OPENSSL_LIB_DIR` / `<TRIPLE>_OPENSSL_INCLUDE_DIR` variables. The table
below is stored as Jinja2 templates so both names and values follow the target.
"""

from __future__ import annotations

from dataclasses import dataclass

from jinja2 import Environment, StrictUndefined, TemplateError


class CrossEnvError(RuntimeError):
    pass


DEFAULT_TARGET = "aarch64-unknown-linux-gnu"

DEFAULT_CROSS_ENV: dict[str, str] = {
    "PKG_CONFIG_PATH": "/usr/lib/{{ gnu_triple }}/pkgconfig",
    "{{ env_prefix }}_OPENSSL_LIB_DIR": "/usr/lib/{{ gnu_triple }}",
    "{{ env_prefix }}_OPENSSL_INCLUDE_DIR": "/usr/include/{{ gnu_triple }}",
    "CFLAGS": "-I/usr/include/{{ gnu_triple }} -I/usr/include",
}


def gnu_triple_for(target: str) -> str:
    """
    Map a Rust target triple to the Debian multiarch triple.

    aarch64-unknown-linux-gnu -> aarch64-linux-gnu
    """
    parts = target.split("-")
    if len(parts) == 4 and parts[1] == "unknown":
        return "-".join([parts[0], parts[2], parts[3]])
    return target


@dataclass(frozen=True)
class CrossTarget:
    triple: str = DEFAULT_TARGET
    gnu_triple: str = ""

    @property
    def env_prefix(self) -> str:
        return self.triple.upper().replace("-", "_")

    @property
    def multiarch(self) -> str:
        return self.gnu_triple or gnu_triple_for(self.triple)


def render_cross_env(target: CrossTarget, extra: dict[str, str] | None = None) -> dict[str, str]:
    """
    Render the cross-compilation variables for `target`.

    `extra` entries are rendered the same way and win over the defaults.
    """
    env = Environment(autoescape=False, undefined=StrictUndefined)
    context = {
        "triple": target.triple,
        "gnu_triple": target.multiarch,
        "env_prefix": target.env_prefix,
    }
    table = {**DEFAULT_CROSS_ENV, **(extra or {})}

    out: dict[str, str] = {}
    for name_tpl, value_tpl in table.items():
        try:
            name = env.from_string(name_tpl).render(**context)
            value = env.from_string(str(value_tpl)).render(**context)
        except TemplateError as e:
            raise CrossEnvError(f"Failed rendering cross env entry: {name_tpl}") from e
        out[name] = value
    return out
