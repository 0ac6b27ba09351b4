from __future__ import annotations

import hashlib
from pathlib import Path

from relflow.platform.files import atomic_write_bytes, atomic_write_text, sha256_file


def test_atomic_write_creates_parents(tmp_path: Path) -> None:
    path = tmp_path / "a" / "b" / "state.json"
    atomic_write_text(path, '{"schema": 1}')
    assert path.read_text(encoding="utf-8") == '{"schema": 1}'
    assert [p.name for p in path.parent.iterdir()] == ["state.json"]


def test_atomic_write_replaces(tmp_path: Path) -> None:
    path = tmp_path / "f.bin"
    atomic_write_bytes(path, b"one")
    atomic_write_bytes(path, b"two")
    assert path.read_bytes() == b"two"


def test_sha256_file(tmp_path: Path) -> None:
    path = tmp_path / "artifact.jar"
    path.write_bytes(b"jar-bytes")
    assert sha256_file(path) == hashlib.sha256(b"jar-bytes").hexdigest()
