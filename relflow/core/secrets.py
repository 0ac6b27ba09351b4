"""Environment-injected secret references.

Credentials in `relflow.toml` and rendered Maven settings never hold clear
text. They hold references that the CI agent fills from its environment:

    password = "${env.NEXUS_PASSWORD}"

Both `${env.NAME}` (Maven style) and `${NAME}` are recognised.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass

from .result import Err, Ok, Result

__all__ = ["SecretError", "find_references", "interpolate", "redact", "is_reference"]

_REF_RE = re.compile(r"\$\{(?:env\.)?([A-Za-z_][A-Za-z0-9_]*)\}")


@dataclass(frozen=True, slots=True)
class SecretError:
    """One or more references could not be resolved."""

    message: str
    missing: tuple[str, ...]
    hint: str | None = None


def find_references(text: str) -> list[str]:
    """Return the variable names referenced by text, in order, without duplicates."""
    seen: list[str] = []
    for m in _REF_RE.finditer(text):
        name = m.group(1)
        if name not in seen:
            seen.append(name)
    return seen


def is_reference(text: str) -> bool:
    """True if text is exactly one reference and nothing else."""
    return _REF_RE.fullmatch(text.strip()) is not None


def interpolate(text: str, env: Mapping[str, str]) -> Result[str, SecretError]:
    """Replace every reference in text with its value from env."""
    missing = [name for name in find_references(text) if name not in env]
    if missing:
        return Err(
            SecretError(
                message=f"unresolved secret reference(s): {', '.join(missing)}",
                missing=tuple(missing),
                hint="Export the variables in the agent environment (pipeline secret variables).",
            )
        )
    return Ok(_REF_RE.sub(lambda m: env[m.group(1)], text))


def redact(text: str, secrets: Mapping[str, str]) -> str:
    """Mask every resolved secret value that appears in text."""
    out = text
    # Longest first so a secret containing another is masked whole.
    for value in sorted({v for v in secrets.values() if v}, key=len, reverse=True):
        out = out.replace(value, "***")
    return out
