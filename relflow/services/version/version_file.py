"""Read and write the project version.

Two formats are supported:
- `pom.xml`: the `<version>` that is a direct child of `<project>`. The
  `<parent>` version and dependency versions are never touched, and the
  rest of the file is preserved byte for byte.
- any other file: a plain text file holding only the version.
"""

from __future__ import annotations

import re
from pathlib import Path

from relflow.core.result import Err, Ok, Result
from relflow.platform.files import atomic_write_text
from relflow.services.version.errors import VersionError
from relflow.services.version.semver import Version, parse_version

_TAG_RE = re.compile(r"<(/?)([A-Za-z_][\w.:-]*)(?:\s[^>]*?)?(/?)>")
_COMMENT_RE = re.compile(r"<!--.*?-->", re.DOTALL)


def _local(name: str) -> str:
    return name.split(":", 1)[-1]


def _blank_comments(text: str) -> str:
    # Same-length replacement keeps offsets valid for the original text.
    return _COMMENT_RE.sub(lambda m: " " * len(m.group(0)), text)


def find_project_version_span(pom_text: str) -> tuple[int, int] | None:
    """Return (start, end) offsets of the project-level version text."""
    scan = _blank_comments(pom_text)
    depth = 0
    open_start: int | None = None

    for m in _TAG_RE.finditer(scan):
        closing, name, self_closing = m.group(1), _local(m.group(2)), m.group(3)
        if self_closing:
            continue
        if closing:
            depth -= 1
            if open_start is not None and depth == 1 and name == "version":
                return (open_start, m.start())
            continue
        if depth == 1 and name == "version":
            open_start = m.end()
        depth += 1

    return None


def _is_pom(path: Path) -> bool:
    return path.suffix == ".xml"


def read_version(path: Path) -> Result[Version, VersionError]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        return Err(VersionError(kind="version_file", message=f"cannot read {path}: {e}"))

    raw = text
    if _is_pom(path):
        span = find_project_version_span(text)
        if span is None:
            return Err(
                VersionError(
                    kind="version_file",
                    message=f"no project <version> in {path}",
                    hint="A version inherited from <parent> cannot be released independently.",
                )
            )
        raw = text[span[0] : span[1]]

    v = parse_version(raw)
    if v is None:
        return Err(
            VersionError(
                kind="invalid_version",
                message=f"unsupported version {raw.strip()!r} in {path}",
                hint="Expected: MAJOR.MINOR.PATCH[-SNAPSHOT]",
            )
        )
    return Ok(v)


def write_version(path: Path, version: Version) -> Result[None, VersionError]:
    try:
        if _is_pom(path):
            text = path.read_text(encoding="utf-8")
            span = find_project_version_span(text)
            if span is None:
                return Err(
                    VersionError(kind="version_file", message=f"no project <version> in {path}")
                )
            content = text[: span[0]] + str(version) + text[span[1] :]
        else:
            content = f"{version}\n"
        atomic_write_text(path, content)
    except OSError as e:
        return Err(VersionError(kind="version_file", message=f"cannot write {path}: {e}"))
    return Ok(None)
