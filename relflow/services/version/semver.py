from __future__ import annotations

import re
from dataclasses import dataclass
from functools import total_ordering
from typing import Literal

Bump = Literal["major", "minor", "patch"]

SNAPSHOT_SUFFIX = "-SNAPSHOT"

_VERSION_RE = re.compile(r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)(-SNAPSHOT)?$")


@total_ordering
@dataclass(frozen=True, slots=True)
class Version:
    """A Maven version `MAJOR.MINOR.PATCH[-SNAPSHOT]`.

    A snapshot sorts before the release it leads to:
    `1.2.0-SNAPSHOT < 1.2.0 < 1.2.1-SNAPSHOT`.
    """

    major: int
    minor: int
    patch: int
    snapshot: bool = False

    def _key(self) -> tuple[int, int, int, int]:
        return (self.major, self.minor, self.patch, 0 if self.snapshot else 1)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() < other._key()

    @property
    def base(self) -> Version:
        """The version without its SNAPSHOT qualifier."""
        return Version(self.major, self.minor, self.patch)

    def to_release(self) -> Version:
        return self.base

    def to_snapshot(self) -> Version:
        return Version(self.major, self.minor, self.patch, snapshot=True)

    def bump(self, kind: Bump) -> Version:
        match kind:
            case "major":
                return Version(self.major + 1, 0, 0, self.snapshot)
            case "minor":
                return Version(self.major, self.minor + 1, 0, self.snapshot)
            case "patch":
                return Version(self.major, self.minor, self.patch + 1, self.snapshot)
            case _:
                raise AssertionError(f"unexpected bump kind: {kind}")

    def next_snapshot(self, kind: Bump = "patch") -> Version:
        """Next development version after releasing this one."""
        return self.base.bump(kind).to_snapshot()

    def __str__(self) -> str:
        s = f"{self.major}.{self.minor}.{self.patch}"
        return s + SNAPSHOT_SUFFIX if self.snapshot else s


def parse_version(text: str) -> Version | None:
    m = _VERSION_RE.match(text.strip())
    if m is None:
        return None
    return Version(
        int(m.group(1)),
        int(m.group(2)),
        int(m.group(3)),
        snapshot=m.group(4) is not None,
    )
