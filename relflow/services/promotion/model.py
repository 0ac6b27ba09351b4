from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal

from relflow.services.version.semver import Version, parse_version

# One path segment of the repository layout.
_PART_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


def _is_segment(part: str) -> bool:
    return _PART_RE.match(part) is not None and part not in (".", "..")


@dataclass(frozen=True, slots=True)
class PromotionError:
    kind: Literal[
        "unknown_repository",
        "version_policy",
        "read_only",
        "redeploy_rejected",
        "snapshot_promotion",
        "not_found",
        "checksum_mismatch",
        "invalid_input",
        "storage",
    ]
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class Coordinates:
    """Maven coordinates `group:artifact:version[:packaging[:classifier]]`."""

    group_id: str
    artifact_id: str
    version: str
    packaging: str = "jar"
    classifier: str | None = None

    @property
    def is_well_formed(self) -> bool:
        """Every part is a plain name that stays inside its repository directory."""
        parts = [self.artifact_id, self.version, self.packaging]
        if self.classifier is not None:
            parts.append(self.classifier)
        group = self.group_id.split(".")
        return all(_is_segment(p) for p in parts) and all(_is_segment(g) for g in group)

    @property
    def parsed_version(self) -> Version | None:
        return parse_version(self.version)

    @property
    def is_snapshot(self) -> bool:
        return self.version.endswith("-SNAPSHOT")

    @property
    def filename(self) -> str:
        suffix = f"-{self.classifier}" if self.classifier else ""
        return f"{self.artifact_id}-{self.version}{suffix}.{self.packaging}"

    @property
    def layout_path(self) -> str:
        """Path in the Maven 2 repository layout."""
        group = self.group_id.replace(".", "/")
        return f"{group}/{self.artifact_id}/{self.version}/{self.filename}"

    def __str__(self) -> str:
        parts = [self.group_id, self.artifact_id, self.version, self.packaging]
        if self.classifier:
            parts.append(self.classifier)
        return ":".join(parts)


def parse_coordinates(text: str) -> Coordinates | None:
    parts = [p.strip() for p in text.split(":")]
    if len(parts) < 3 or len(parts) > 5 or not all(parts):
        return None
    packaging = parts[3] if len(parts) > 3 else "jar"
    classifier = parts[4] if len(parts) > 4 else None
    coords = Coordinates(parts[0], parts[1], parts[2], packaging, classifier)
    return coords if coords.is_well_formed else None


@dataclass(frozen=True, slots=True)
class ArtifactRecord:
    repository: str
    coordinates: Coordinates
    sha256: str
    size: int


@dataclass(frozen=True, slots=True)
class PromotionRecord:
    coordinates: Coordinates
    source: str
    target: str
    sha256: str
    promoted_by: str
    promoted_at: str
    already_present: bool = False
