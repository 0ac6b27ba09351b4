"""Typed configuration loading and access.

This module provides dataclasses for the `relflow.toml` structure with
full type safety and validation. Every section is optional; missing values
fall back to the GitFlow defaults (snapshots / staging / releases tiers and
development / uat / production environments).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, cast

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_bool, get_int, get_str, get_str_list, get_table

__all__ = [
    "Config",
    "ConfigError",
    "CredentialConfig",
    "EnvironmentConfig",
    "EnvironmentName",
    "ENVIRONMENTS",
    "ProjectConfig",
    "RepositoryConfig",
    "RepositoryPolicy",
    "WritePolicy",
    "load_config",
    "load_config_or_default",
    "CONFIG_FILENAME",
]

CONFIG_FILENAME = "relflow.toml"

EnvironmentName = Literal["development", "uat", "production"]
RepositoryPolicy = Literal["snapshot", "release"]
WritePolicy = Literal["allow_redeploy", "disable_redeploy", "read_only"]

ENVIRONMENTS: tuple[EnvironmentName, ...] = ("development", "uat", "production")
_REPOSITORY_POLICIES: tuple[RepositoryPolicy, ...] = ("snapshot", "release")
_WRITE_POLICIES: tuple[WritePolicy, ...] = ("allow_redeploy", "disable_redeploy", "read_only")

DEFAULT_TAG_FORMAT = "v{version}"
DEFAULT_TIMEOUT_HOURS = 72


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class ProjectConfig:
    """Maven coordinates of the project being released."""

    group_id: str = "com.example"
    artifact_id: str = "app"
    packaging: str = "jar"
    tag_format: str = DEFAULT_TAG_FORMAT
    version_file: str = "pom.xml"


@dataclass(frozen=True, slots=True)
class RepositoryConfig:
    """A repository-manager tier (Nexus hosted repository)."""

    name: str
    policy: RepositoryPolicy
    write_policy: WritePolicy
    url: str | None = None
    server_id: str | None = None

    @property
    def is_immutable(self) -> bool:
        return self.write_policy != "allow_redeploy"


@dataclass(frozen=True, slots=True)
class EnvironmentConfig:
    """Deployment target and its approval policy."""

    name: EnvironmentName
    repository: str
    min_approvers: int
    approvers: tuple[str, ...] = ()
    allow_self_approval: bool = False
    timeout_hours: int = DEFAULT_TIMEOUT_HOURS


@dataclass(frozen=True, slots=True)
class CredentialConfig:
    """Server credentials; values are `${env.NAME}` references, not secrets."""

    server_id: str
    username: str
    password: str


def _default_repositories() -> dict[str, RepositoryConfig]:
    return {
        "snapshots": RepositoryConfig("snapshots", "snapshot", "allow_redeploy"),
        "staging": RepositoryConfig("staging", "release", "allow_redeploy"),
        "releases": RepositoryConfig("releases", "release", "disable_redeploy"),
    }


def _default_environments() -> dict[EnvironmentName, EnvironmentConfig]:
    return {
        "development": EnvironmentConfig("development", "snapshots", 0),
        "uat": EnvironmentConfig("uat", "staging", 1),
        "production": EnvironmentConfig("production", "releases", 2),
    }


def _check_tag_format(tag_format: str) -> None:
    if "{version}" not in tag_format:
        raise ValueError(f"tag_format must contain {{version}}: {tag_format!r}")
    try:
        tag_format.format(version="0.0.0", artifact_id="app")
    except (KeyError, IndexError, ValueError) as e:
        raise ValueError(
            f"tag_format: only {{version}} and {{artifact_id}} are allowed: {tag_format!r} ({e})"
        ) from None


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    project: ProjectConfig = field(default_factory=ProjectConfig)
    pipeline_file: str = "azure-pipelines.yml"
    repositories: dict[str, RepositoryConfig] = field(default_factory=_default_repositories)
    environments: dict[EnvironmentName, EnvironmentConfig] = field(
        default_factory=_default_environments
    )
    credentials: tuple[CredentialConfig, ...] = ()

    def repository(self, name: str) -> RepositoryConfig | None:
        return self.repositories.get(name)

    def environment(self, name: EnvironmentName) -> EnvironmentConfig:
        return self.environments[name]

    def first_tier(self, *, snapshot: bool) -> RepositoryConfig:
        """Repository a fresh build lands in before any promotion.

        SNAPSHOT builds go to the first snapshot repository; release builds
        go to the first mutable release repository (staging), falling back
        to any release repository.
        """
        wanted: RepositoryPolicy = "snapshot" if snapshot else "release"
        candidates = [r for r in self.repositories.values() if r.policy == wanted]
        if not candidates:
            raise ValueError(f"no {wanted} repository configured")
        mutable = [r for r in candidates if r.write_policy == "allow_redeploy"]
        return (mutable or candidates)[0]

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create Config from a mapping (parsed TOML).

        Raises:
            ValueError: On values that are present but invalid.
        """
        project: StrDict = get_table(data, "project") or {}
        pipeline: StrDict = get_table(data, "pipeline") or {}
        repos_raw: StrDict = get_table(data, "repositories") or {}
        envs_raw: StrDict = get_table(data, "environments") or {}
        creds_raw: StrDict = get_table(data, "credentials") or {}

        defaults = ProjectConfig()
        project_cfg = ProjectConfig(
            group_id=get_str(project, "group_id") or defaults.group_id,
            artifact_id=get_str(project, "artifact_id") or defaults.artifact_id,
            packaging=get_str(project, "packaging") or defaults.packaging,
            tag_format=get_str(project, "tag_format") or defaults.tag_format,
            version_file=get_str(project, "version_file") or defaults.version_file,
        )
        _check_tag_format(project_cfg.tag_format)

        repositories = _default_repositories() if not repos_raw else {}
        for name, raw in repos_raw.items():
            table = as_str_dict(raw) or {}
            policy = get_str(table, "policy") or "release"
            write_policy = get_str(table, "write_policy") or "disable_redeploy"
            if policy not in _REPOSITORY_POLICIES:
                raise ValueError(f"repositories.{name}.policy: unknown policy {policy!r}")
            if write_policy not in _WRITE_POLICIES:
                raise ValueError(
                    f"repositories.{name}.write_policy: unknown policy {write_policy!r}"
                )
            repositories[name] = RepositoryConfig(
                name=name,
                policy=cast(RepositoryPolicy, policy),
                write_policy=cast(WritePolicy, write_policy),
                url=get_str(table, "url"),
                server_id=get_str(table, "server_id"),
            )

        environments = _default_environments()
        for name, raw in envs_raw.items():
            if name not in ENVIRONMENTS:
                raise ValueError(f"environments.{name}: unknown environment")
            env_name = cast(EnvironmentName, name)
            table = as_str_dict(raw) or {}
            base = environments[env_name]
            min_approvers = get_int(table, "min_approvers")
            timeout = get_int(table, "timeout_hours")
            environments[env_name] = EnvironmentConfig(
                name=env_name,
                repository=get_str(table, "repository") or base.repository,
                min_approvers=base.min_approvers if min_approvers is None else min_approvers,
                approvers=tuple(get_str_list(table, "approvers") or ()),
                allow_self_approval=bool(get_bool(table, "allow_self_approval")),
                timeout_hours=timeout if timeout is not None else base.timeout_hours,
            )

        for env in environments.values():
            if env.repository not in repositories:
                raise ValueError(
                    f"environments.{env.name}.repository: unknown repository {env.repository!r}"
                )
            if env.min_approvers < 0:
                raise ValueError(f"environments.{env.name}.min_approvers must be >= 0")
            if env.timeout_hours < 1:
                raise ValueError(f"environments.{env.name}.timeout_hours must be >= 1")

        credentials: list[CredentialConfig] = []
        for server_id, raw in creds_raw.items():
            table = as_str_dict(raw) or {}
            username = get_str(table, "username")
            password = get_str(table, "password")
            if username is None or password is None:
                raise ValueError(f"credentials.{server_id}: username and password are required")
            credentials.append(CredentialConfig(server_id, username, password))

        return cls(
            project=project_cfg,
            pipeline_file=get_str(pipeline, "file") or "azure-pipelines.yml",
            repositories=repositories,
            environments=environments,
            credentials=tuple(credentials),
        )


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling import and parse errors."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and parse configuration from a TOML file.

    Args:
        path: Path to relflow.toml

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Config.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


def load_config_or_default(path: Path) -> Config:
    """Load config from file, or return the default config on any failure."""
    result = load_config(path)
    if isinstance(result, Ok):
        return result.value
    return Config()
