"""GitFlow branch rules.

Branch identity decides where a build may deploy and which versions it may
carry:

    branch       environment   version
    develop      development   X.Y.Z-SNAPSHOT only
    feature/*    (none)        X.Y.Z-SNAPSHOT only
    release/*    uat           snapshot candidates or the release; base must match the branch
    hotfix/*     uat           same as release/*
    main         production    X.Y.Z only (never SNAPSHOT)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from relflow.core.config import EnvironmentName
from relflow.core.result import Err, Ok, Result
from relflow.services.version.semver import Bump, Version, parse_version

_REFS_PREFIX = "refs/heads/"


class BranchKind(StrEnum):
    DEVELOP = "develop"
    FEATURE = "feature"
    RELEASE = "release"
    HOTFIX = "hotfix"
    MAIN = "main"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class BranchInfo:
    name: str
    kind: BranchKind
    version_hint: Version | None = None

    @property
    def ref(self) -> str:
        return _REFS_PREFIX + self.name


@dataclass(frozen=True, slots=True)
class BranchError:
    kind: str
    message: str
    hint: str | None = None


def short_name(branch: str) -> str:
    name = branch.strip()
    if name.startswith(_REFS_PREFIX):
        name = name[len(_REFS_PREFIX) :]
    return name


def classify_branch(branch: str) -> BranchInfo:
    name = short_name(branch)

    if name in ("main", "master"):
        return BranchInfo(name, BranchKind.MAIN)
    if name == "develop":
        return BranchInfo(name, BranchKind.DEVELOP)

    prefix, sep, rest = name.partition("/")
    if sep and rest:
        match prefix:
            case "feature":
                return BranchInfo(name, BranchKind.FEATURE)
            case "release" | "hotfix":
                hint = parse_version(rest.removeprefix("v"))
                if hint is not None and hint.snapshot:
                    hint = None
                kind = BranchKind.RELEASE if prefix == "release" else BranchKind.HOTFIX
                return BranchInfo(name, kind, hint)
            case _:
                pass

    return BranchInfo(name, BranchKind.OTHER)


def target_environment(kind: BranchKind) -> EnvironmentName | None:
    match kind:
        case BranchKind.DEVELOP:
            return "development"
        case BranchKind.RELEASE | BranchKind.HOTFIX:
            return "uat"
        case BranchKind.MAIN:
            return "production"
        case _:
            return None


def default_bump(kind: BranchKind) -> Bump:
    if kind == BranchKind.RELEASE:
        return "minor"
    return "patch"


def check_branch_version(info: BranchInfo, version: Version) -> Result[None, BranchError]:
    match info.kind:
        case BranchKind.DEVELOP | BranchKind.FEATURE:
            if not version.snapshot:
                return Err(
                    BranchError(
                        kind="version_policy",
                        message=f"{info.name} builds must be SNAPSHOT versions (got {version})",
                        hint="Release versions are only produced on release/*, hotfix/* or main.",
                    )
                )
        case BranchKind.MAIN:
            if version.snapshot:
                return Err(
                    BranchError(
                        kind="version_policy",
                        message=f"{info.name} only carries release versions (got {version})",
                        hint="Run the release on release/* or hotfix/* and merge the tag.",
                    )
                )
        case BranchKind.RELEASE | BranchKind.HOTFIX:
            if info.version_hint is not None and version.base != info.version_hint:
                return Err(
                    BranchError(
                        kind="version_policy",
                        message=(
                            f"{info.name} expects version {info.version_hint} "
                            f"(or its SNAPSHOT), got {version}"
                        ),
                    )
                )
        case BranchKind.OTHER:
            pass

    return Ok(None)
