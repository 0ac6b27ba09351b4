"""Configuration surfaces for the external tools.

- `settings.xml` servers whose credentials stay `${env.NAME}` references,
  resolved by Maven on the CI agent, or filled in here for agents that
  need a materialized file;
- the `<distributionManagement>` fragment of the project descriptor.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Literal

from relflow.core.config import Config
from relflow.core.result import Err, Ok, Result
from relflow.core.secrets import find_references, interpolate, is_reference, redact

SETTINGS_NS = "http://maven.apache.org/SETTINGS/1.2.0"
SETTINGS_SCHEMA = "https://maven.apache.org/xsd/settings-1.2.0.xsd"


@dataclass(frozen=True, slots=True)
class RenderError:
    kind: Literal["secret_in_config", "unresolved_secret"]
    message: str
    hint: str | None = None


def _sub(parent: ET.Element, tag: str, text: str | None = None) -> ET.Element:
    el = ET.SubElement(parent, tag)
    if text is not None:
        el.text = text
    return el


def _to_text(root: ET.Element) -> str:
    ET.indent(root, space="  ")
    return ET.tostring(root, encoding="unicode", xml_declaration=False) + "\n"


def render_settings_xml(config: Config) -> Result[str, RenderError]:
    """Render Maven settings with one <server> per configured credential.

    Every username and password must be a reference; a clear-text value is
    a `secret_in_config` error naming the offending key.
    """
    root = ET.Element(
        "settings",
        {
            "xmlns": SETTINGS_NS,
            "xmlns:xsi": "http://www.w3.org/2001/XMLSchema-instance",
            "xsi:schemaLocation": f"{SETTINGS_NS} {SETTINGS_SCHEMA}",
        },
    )
    servers = _sub(root, "servers")
    for cred in config.credentials:
        for label, value in (("username", cred.username), ("password", cred.password)):
            if not is_reference(value):
                return Err(
                    RenderError(
                        kind="secret_in_config",
                        message=(
                            f"credentials.{cred.server_id}.{label} "
                            "must be an ${env.NAME} reference"
                        ),
                        hint="Store secrets in the environment, not in relflow.toml.",
                    )
                )
        server = _sub(servers, "server")
        _sub(server, "id", cred.server_id)
        _sub(server, "username", cred.username)
        _sub(server, "password", cred.password)

    return Ok('<?xml version="1.0" encoding="UTF-8"?>\n' + _to_text(root))


def resolve_secrets(text: str, env: Mapping[str, str]) -> Result[str, RenderError]:
    """Fill every reference in rendered text from env."""
    resolved = interpolate(text, env)
    if isinstance(resolved, Err):
        return Err(
            RenderError(
                kind="unresolved_secret",
                message=resolved.error.message,
                hint=resolved.error.hint,
            )
        )
    return Ok(resolved.value)


def redact_secrets(template: str, resolved: str, env: Mapping[str, str]) -> str:
    """Mask, in resolved, the values of the references found in template."""
    values = {name: env[name] for name in find_references(template) if name in env}
    return redact(resolved, values)


def render_distribution_management(config: Config) -> str:
    """Render <distributionManagement> for the immutable and snapshot tiers."""
    root = ET.Element("distributionManagement")

    releases = [r for r in config.repositories.values() if r.policy == "release"]
    immutable = [r for r in releases if r.is_immutable] or releases
    snapshots = [r for r in config.repositories.values() if r.policy == "snapshot"]

    for tag, repos in (("repository", immutable), ("snapshotRepository", snapshots)):
        if not repos:
            continue
        repo = repos[0]
        el = _sub(root, tag)
        _sub(el, "id", repo.server_id or repo.name)
        _sub(el, "name", repo.name)
        if repo.url:
            _sub(el, "url", repo.url)

    return _to_text(root)
