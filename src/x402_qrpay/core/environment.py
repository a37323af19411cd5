"""
Environment assembly for the payment configuration.

Values come from the process environment, an optional ``.env`` file and
explicit overrides. The file only fills gaps in the base mapping; overrides
always win.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, Mapping, MutableMapping, Optional, Tuple

__all__ = ["PaymentEnvironment", "build_environment", "load_env_file", "read_env_file"]

_TRUTHY = frozenset({"1", "true", "yes", "on"})


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    # Unquoted values may carry a trailing comment.
    return value.split(" #", 1)[0].rstrip()


def _assignments(text: str) -> Iterator[Tuple[str, str]]:
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if line.startswith("export "):
            line = line[len("export "):].lstrip()
        if line.startswith("#"):
            continue
        name, sep, raw_value = line.partition("=")
        name = name.strip()
        if sep and name:
            yield name, _unquote(raw_value.strip())


def read_env_file(path: Optional[str]) -> Dict[str, str]:
    """Return the assignments in ``path``; a missing file yields nothing."""
    if path is None:
        return {}
    env_path = Path(path)
    if not env_path.is_file():
        return {}
    return dict(_assignments(env_path.read_text(encoding="utf-8")))


def load_env_file(
    path: str = ".env",
    *,
    environ: Optional[MutableMapping[str, str]] = None,
) -> Dict[str, str]:
    """
    Copy variables from ``path`` into ``environ`` (``os.environ`` by default)
    without replacing keys that are already set, and return the result.
    """
    target = os.environ if environ is None else environ
    for name, value in read_env_file(path).items():
        target.setdefault(name, value)
    return dict(target)


@dataclass(frozen=True)
class PaymentEnvironment:
    variables: Mapping[str, str]

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self.variables.get(key, default)

    def flag(self, key: str, default: bool = False) -> bool:
        raw = (self.variables.get(key) or "").strip()
        if not raw:
            return default
        return raw.lower() in _TRUTHY


def build_environment(
    *,
    env_file: Optional[str] = ".env",
    base: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, str]] = None,
) -> PaymentEnvironment:
    variables: Dict[str, str] = {**read_env_file(env_file)}
    variables.update(os.environ if base is None else base)
    variables.update(overrides or {})
    return PaymentEnvironment(variables=variables)
