from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True, slots=True)
class VersionError:
    kind: Literal[
        "invalid_version",
        "not_snapshot",
        "tag_exists",
        "dirty_tree",
        "git_failed",
        "version_file",
    ]
    message: str
    hint: str | None = None
