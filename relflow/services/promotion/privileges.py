"""Repository-manager privilege strings.

Privileges follow the repository view naming of Nexus Repository:

    nx-repository-view-<format>-<repository>-<action>

`required_privileges` gives the least privilege set an operation needs;
`role_privileges` derives the CI roles of a configuration from it.
"""

from __future__ import annotations

from typing import Literal

from relflow.core.config import Config, RepositoryConfig

Action = Literal["browse", "read", "add", "edit", "delete", "*"]
Operation = Literal["read", "deploy", "promote"]

ACTIONS: tuple[Action, ...] = ("browse", "read", "add", "edit", "delete", "*")
OPERATIONS: tuple[Operation, ...] = ("read", "deploy", "promote")


def privilege(repository: str, action: Action, *, fmt: str = "maven2") -> str:
    return f"nx-repository-view-{fmt}-{repository}-{action}"


def required_privileges(
    operation: Operation,
    repository: RepositoryConfig,
    *,
    source: RepositoryConfig | None = None,
    fmt: str = "maven2",
) -> list[str]:
    """Privileges needed for one operation against one repository.

    For `promote`, `repository` is the target and `source` the repository
    the artifact is copied from.
    """
    actions: list[Action]
    match operation:
        case "read":
            actions = ["browse", "read"]
        case "deploy" | "promote":
            if repository.write_policy == "read_only":
                return []
            actions = ["browse", "read", "add"]
            # Overwriting an existing component needs edit.
            if repository.write_policy == "allow_redeploy":
                actions.append("edit")

    out = [privilege(repository.name, a, fmt=fmt) for a in actions]
    if operation == "promote" and source is not None:
        out = [privilege(source.name, a, fmt=fmt) for a in ("browse", "read")] + out
    return out


def promotion_paths(config: Config) -> list[tuple[str, str]]:
    """Source -> target repository pairs a release travels through."""
    try:
        first = config.first_tier(snapshot=False)
    except ValueError:
        return []
    pairs: list[tuple[str, str]] = []
    for env in config.environments.values():
        target = config.repositories[env.repository]
        if target.policy != "release" or target.name == first.name:
            continue
        if (first.name, target.name) not in pairs:
            pairs.append((first.name, target.name))
    return pairs


def role_privileges(config: Config, *, fmt: str = "maven2") -> dict[str, list[str]]:
    """Least-privilege roles for readers, the CI deployer and release managers."""
    roles: dict[str, list[str]] = {"reader": [], "ci-deployer": [], "release-manager": []}

    for repo in config.repositories.values():
        roles["reader"].extend(required_privileges("read", repo, fmt=fmt))
        if repo.write_policy == "allow_redeploy":
            roles["ci-deployer"].extend(required_privileges("deploy", repo, fmt=fmt))

    for source, target in promotion_paths(config):
        roles["release-manager"].extend(
            required_privileges(
                "promote",
                config.repositories[target],
                source=config.repositories[source],
                fmt=fmt,
            )
        )

    return {role: sorted(set(privs)) for role, privs in roles.items()}
