"""Filesystem repository manager.

Holds artifacts in per-repository directories using the Maven 2 layout,
each file with a `.sha256` sidecar, plus an append-only promotion ledger.
Write rules mirror the hosted repository settings of a repository manager:

- version policy: snapshot repositories take only -SNAPSHOT versions,
  release repositories take only release versions;
- write policy: `allow_redeploy`, `disable_redeploy` (first write wins),
  `read_only` (no writes at all).

Promotion copies bytes between repositories without rebuilding, and checks
the digest on both sides.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path

from relflow.core.config import RepositoryConfig
from relflow.core.result import Err, Ok, Result
from relflow.core.structured import as_obj_list, as_str_dict, get_bool, get_str
from relflow.platform.files import atomic_write_bytes, atomic_write_text, sha256_file
from relflow.services.promotion.model import (
    ArtifactRecord,
    Coordinates,
    PromotionError,
    PromotionRecord,
    parse_coordinates,
)

LEDGER_FILENAME = "promotions.json"
_SHA_SUFFIX = ".sha256"


def _digest(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


def _check_coordinates(coords: Coordinates) -> Result[None, PromotionError]:
    if not coords.is_well_formed:
        return Err(
            PromotionError(
                kind="invalid_input",
                message=f"malformed coordinates: {coords}",
                hint="Each part may use only letters, digits, '_', '-' and '.'",
            )
        )
    return Ok(None)


class FileSystemRepositoryManager:
    def __init__(self, root: Path, repositories: Mapping[str, RepositoryConfig]) -> None:
        self.root = root
        self._repositories = dict(repositories)

    @property
    def ledger_path(self) -> Path:
        return self.root / LEDGER_FILENAME

    def repository(self, name: str) -> Result[RepositoryConfig, PromotionError]:
        repo = self._repositories.get(name)
        if repo is None:
            return Err(
                PromotionError(
                    kind="unknown_repository",
                    message=f"unknown repository: {name}",
                    hint=f"Configured: {', '.join(sorted(self._repositories))}",
                )
            )
        return Ok(repo)

    def _file(self, repo: str, coords: Coordinates) -> Path:
        return self.root / repo / coords.layout_path

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, repo: str, coords: Coordinates) -> ArtifactRecord | None:
        path = self._file(repo, coords)
        sidecar = path.with_name(path.name + _SHA_SUFFIX)
        if not path.is_file() or not sidecar.is_file():
            return None
        return ArtifactRecord(
            repository=repo,
            coordinates=coords,
            sha256=sidecar.read_text(encoding="utf-8").strip(),
            size=path.stat().st_size,
        )

    def read(self, repo: str, coords: Coordinates) -> Result[bytes, PromotionError]:
        path = self._file(repo, coords)
        try:
            return Ok(path.read_bytes())
        except FileNotFoundError:
            return Err(PromotionError(kind="not_found", message=f"{coords} not found in {repo}"))
        except OSError as e:
            return Err(PromotionError(kind="storage", message=f"cannot read {path}: {e}"))

    def list(self, repo: str) -> list[ArtifactRecord]:
        base = self.root / repo
        if not base.is_dir():
            return []
        records: list[ArtifactRecord] = []
        for sidecar in sorted(base.rglob(f"*{_SHA_SUFFIX}")):
            artifact = sidecar.with_name(sidecar.name.removesuffix(_SHA_SUFFIX))
            coords = _coords_from_path(artifact.relative_to(base))
            if coords is None or not artifact.is_file():
                continue
            records.append(
                ArtifactRecord(
                    repository=repo,
                    coordinates=coords,
                    sha256=sidecar.read_text(encoding="utf-8").strip(),
                    size=artifact.stat().st_size,
                )
            )
        return records

    def history(self) -> list[PromotionRecord]:
        records: list[PromotionRecord] = []
        for item in self._read_ledger():
            d = as_str_dict(item)
            if d is None:
                continue
            coords = parse_coordinates(get_str(d, "coordinates") or "")
            source = get_str(d, "source")
            target = get_str(d, "target")
            sha = get_str(d, "sha256")
            who = get_str(d, "promoted_by")
            at = get_str(d, "promoted_at")
            if coords is None or not (source and target and sha and who and at):
                continue
            records.append(
                PromotionRecord(
                    coordinates=coords,
                    source=source,
                    target=target,
                    sha256=sha,
                    promoted_by=who,
                    promoted_at=at,
                    already_present=bool(get_bool(d, "already_present")),
                )
            )
        return records

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def _check_writable(
        self, repo: RepositoryConfig, coords: Coordinates, digest: str
    ) -> Result[bool, PromotionError]:
        """Check policies; Ok(True) means identical bytes are already stored."""
        checked = _check_coordinates(coords)
        if isinstance(checked, Err):
            return checked
        if coords.parsed_version is None:
            return Err(
                PromotionError(
                    kind="invalid_input",
                    message=f"unsupported version in {coords}",
                    hint="Expected: MAJOR.MINOR.PATCH[-SNAPSHOT]",
                )
            )
        if repo.policy == "release" and coords.is_snapshot:
            return Err(
                PromotionError(
                    kind="version_policy",
                    message=f"{repo.name} is a release repository; {coords.version} is a snapshot",
                )
            )
        if repo.policy == "snapshot" and not coords.is_snapshot:
            return Err(
                PromotionError(
                    kind="version_policy",
                    message=f"{repo.name} is a snapshot repository; {coords.version} is a release",
                )
            )
        if repo.write_policy == "read_only":
            return Err(PromotionError(kind="read_only", message=f"{repo.name} is read-only"))

        existing = self.get(repo.name, coords)
        if existing is None:
            return Ok(False)
        if existing.sha256 == digest:
            return Ok(True)
        if repo.write_policy == "disable_redeploy":
            return Err(
                PromotionError(
                    kind="redeploy_rejected",
                    message=f"{coords} already exists in {repo.name} and redeploy is disabled",
                    hint="Released artifacts are immutable; release a new version instead.",
                )
            )
        return Ok(False)

    def _store(self, repo: str, coords: Coordinates, content: bytes, digest: str) -> None:
        path = self._file(repo, coords)
        atomic_write_bytes(path, content)
        atomic_write_text(path.with_name(path.name + _SHA_SUFFIX), digest + "\n")

    def deploy(
        self, repo_name: str, coords: Coordinates, content: bytes
    ) -> Result[ArtifactRecord, PromotionError]:
        repo = self.repository(repo_name)
        if isinstance(repo, Err):
            return repo

        digest = _digest(content)
        present = self._check_writable(repo.value, coords, digest)
        if isinstance(present, Err):
            return present

        if not present.value:
            try:
                self._store(repo_name, coords, content, digest)
            except OSError as e:
                return Err(PromotionError(kind="storage", message=f"deploy failed: {e}"))

        return Ok(ArtifactRecord(repo_name, coords, digest, len(content)))

    def promote(
        self,
        coords: Coordinates,
        *,
        source: str,
        target: str,
        promoted_by: str,
        now: datetime | None = None,
    ) -> Result[PromotionRecord, PromotionError]:
        checked = _check_coordinates(coords)
        if isinstance(checked, Err):
            return checked
        if coords.is_snapshot:
            return Err(
                PromotionError(
                    kind="snapshot_promotion",
                    message=f"{coords} is a snapshot and cannot be promoted",
                    hint="Promote the release build produced on release/*, hotfix/* or main.",
                )
            )
        if source == target:
            return Err(
                PromotionError(kind="invalid_input", message="source and target are the same")
            )

        src_repo = self.repository(source)
        if isinstance(src_repo, Err):
            return src_repo
        dst_repo = self.repository(target)
        if isinstance(dst_repo, Err):
            return dst_repo

        stored = self.get(source, coords)
        if stored is None:
            return Err(
                PromotionError(
                    kind="not_found",
                    message=f"{coords} not found in {source}",
                    hint="Deploy the build to the source repository first.",
                )
            )

        content = self.read(source, coords)
        if isinstance(content, Err):
            return content
        digest = _digest(content.value)
        if digest != stored.sha256:
            return Err(
                PromotionError(
                    kind="checksum_mismatch",
                    message=f"{coords} in {source} does not match its recorded checksum",
                )
            )

        present = self._check_writable(dst_repo.value, coords, digest)
        if isinstance(present, Err):
            return present

        ledger = self._load_ledger()
        if isinstance(ledger, Err):
            return ledger

        if not present.value:
            try:
                self._store(target, coords, content.value, digest)
            except OSError as e:
                return Err(PromotionError(kind="storage", message=f"promotion failed: {e}"))

            try:
                copied = sha256_file(self._file(target, coords))
            except OSError as e:
                return Err(PromotionError(kind="storage", message=f"cannot verify copy: {e}"))
            if copied != digest:
                return Err(
                    PromotionError(
                        kind="checksum_mismatch",
                        message=f"{coords} changed while copying to {target}",
                    )
                )

        record = PromotionRecord(
            coordinates=coords,
            source=source,
            target=target,
            sha256=digest,
            promoted_by=promoted_by,
            promoted_at=(now or datetime.now(tz=UTC)).isoformat(),
            already_present=present.value,
        )
        logged = self._append_ledger(ledger.value, record)
        if isinstance(logged, Err):
            return logged
        return Ok(record)

    # -------------------------------------------------------------------------
    # Ledger
    # -------------------------------------------------------------------------

    def _read_ledger(self) -> list[object]:
        try:
            obj: object = json.loads(self.ledger_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return []
        return as_obj_list(obj) or []

    def _load_ledger(self) -> Result[list[object], PromotionError]:
        """Read the ledger for appending; a damaged file is never overwritten."""
        if not self.ledger_path.exists():
            return Ok([])
        hint = f"Repair or move {self.ledger_path} aside, then retry."
        try:
            obj: object = json.loads(self.ledger_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            return Err(
                PromotionError(
                    kind="storage", message=f"promotion ledger is corrupt: {e}", hint=hint
                )
            )
        entries = as_obj_list(obj)
        if entries is None:
            return Err(
                PromotionError(
                    kind="storage", message="promotion ledger is corrupt: not a list", hint=hint
                )
            )
        return Ok(entries)

    def _append_ledger(
        self, entries: list[object], record: PromotionRecord
    ) -> Result[None, PromotionError]:
        entries.append(
            {
                "coordinates": str(record.coordinates),
                "source": record.source,
                "target": record.target,
                "sha256": record.sha256,
                "promoted_by": record.promoted_by,
                "promoted_at": record.promoted_at,
                "already_present": record.already_present,
            }
        )
        try:
            atomic_write_text(self.ledger_path, json.dumps(entries, indent=2) + "\n")
        except OSError as e:
            return Err(PromotionError(kind="storage", message=f"cannot write ledger: {e}"))
        return Ok(None)


def _coords_from_path(rel: Path) -> Coordinates | None:
    """Recover coordinates from `group/path/artifact/version/file`."""
    parts = rel.parts
    if len(parts) < 4:
        return None
    *group, artifact_id, version, filename = parts
    prefix = f"{artifact_id}-{version}"
    if not filename.startswith(prefix):
        return None
    rest = filename[len(prefix) :]
    stem, dot, packaging = rest.rpartition(".")
    if not dot:
        return None
    classifier = stem.removeprefix("-") or None
    return Coordinates(".".join(group), artifact_id, version, packaging, classifier)
