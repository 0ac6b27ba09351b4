"""Version Controller: snapshot -> release -> next snapshot, tagged at release."""

from .controller import VersionController
from .planner import ReleasePlan, format_tag, plan_release
from .semver import Bump, Version, parse_version

__all__ = [
    "Bump",
    "ReleasePlan",
    "Version",
    "VersionController",
    "format_tag",
    "parse_version",
    "plan_release",
]
