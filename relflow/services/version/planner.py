from __future__ import annotations

from collections.abc import Collection
from dataclasses import dataclass

from relflow.core.result import Err, Ok, Result
from relflow.services.version.errors import VersionError
from relflow.services.version.semver import Bump, Version, parse_version


@dataclass(frozen=True, slots=True)
class ReleasePlan:
    """Outcome of preparing a release from a development version."""

    current: Version
    release: Version
    next_development: Version
    tag: str


def format_tag(version: Version, *, tag_format: str = "v{version}", artifact_id: str = "") -> str:
    if version.snapshot:
        raise ValueError(f"snapshot versions are never tagged: {version}")
    return tag_format.format(version=str(version), artifact_id=artifact_id)


def _parse_explicit(text: str, *, what: str) -> Result[Version, VersionError]:
    v = parse_version(text)
    if v is None:
        return Err(
            VersionError(
                kind="invalid_version",
                message=f"invalid {what}: {text}",
                hint="Expected: MAJOR.MINOR.PATCH or MAJOR.MINOR.PATCH-SNAPSHOT",
            )
        )
    return Ok(v)


def plan_release(
    *,
    current: Version,
    existing_tags: Collection[str],
    bump: Bump = "patch",
    tag_format: str = "v{version}",
    artifact_id: str = "",
    release_version: str | None = None,
    development_version: str | None = None,
) -> Result[ReleasePlan, VersionError]:
    """Compute release and next development versions (release:prepare).

    The release version defaults to the current version without its
    qualifier; the next development version defaults to the release bumped
    by `bump` plus -SNAPSHOT.
    """
    if not current.snapshot:
        return Err(
            VersionError(
                kind="not_snapshot",
                message=f"current version {current} is already a release",
                hint="Releases start from a -SNAPSHOT development version.",
            )
        )

    release = current.to_release()
    if release_version is not None:
        parsed = _parse_explicit(release_version, what="release version")
        if isinstance(parsed, Err):
            return parsed
        release = parsed.value
        if release.snapshot:
            return Err(
                VersionError(
                    kind="invalid_version",
                    message=f"release version cannot be a snapshot: {release}",
                )
            )
        if release < current.base:
            return Err(
                VersionError(
                    kind="invalid_version",
                    message=f"release version {release} is lower than {current.base}",
                    hint="Releases never go backwards.",
                )
            )

    next_dev = release.next_snapshot(bump)
    if development_version is not None:
        parsed = _parse_explicit(development_version, what="development version")
        if isinstance(parsed, Err):
            return parsed
        next_dev = parsed.value
        if not next_dev.snapshot:
            return Err(
                VersionError(
                    kind="invalid_version",
                    message=f"development version must be a snapshot: {next_dev}",
                    hint=f"Try {next_dev}-SNAPSHOT",
                )
            )
        if next_dev <= release:
            return Err(
                VersionError(
                    kind="invalid_version",
                    message=f"development version {next_dev} must be after release {release}",
                )
            )

    tag = format_tag(release, tag_format=tag_format, artifact_id=artifact_id)
    if tag in existing_tags:
        return Err(
            VersionError(
                kind="tag_exists",
                message=f"tag already exists: {tag}",
                hint="Released versions are immutable; pick a new version.",
            )
        )

    return Ok(ReleasePlan(current=current, release=release, next_development=next_dev, tag=tag))
