from __future__ import annotations

from pathlib import Path

from relflow.core.result import Err, Ok
from relflow.services.version.semver import Version
from relflow.services.version.version_file import (
    find_project_version_span,
    read_version,
    write_version,
)

POM = """<?xml version="1.0" encoding="UTF-8"?>
<project xmlns="http://maven.apache.org/POM/4.0.0">
  <modelVersion>4.0.0</modelVersion>
  <parent>
    <groupId>com.acme</groupId>
    <artifactId>parent</artifactId>
    <version>3.0.0</version>
  </parent>
  <!-- <version>9.9.9</version> -->
  <artifactId>billing</artifactId>
  <version>1.4.0-SNAPSHOT</version>
  <dependencies>
    <dependency>
      <groupId>org.slf4j</groupId>
      <artifactId>slf4j-api</artifactId>
      <version>2.0.13</version>
    </dependency>
  </dependencies>
</project>
"""


def test_span_ignores_parent_comments_and_dependencies() -> None:
    span = find_project_version_span(POM)
    assert span is not None
    assert POM[span[0] : span[1]] == "1.4.0-SNAPSHOT"


def test_pom_without_own_version() -> None:
    pom = "<project><parent><version>1.0.0</version></parent></project>"
    assert find_project_version_span(pom) is None


def test_read_pom(tmp_path: Path) -> None:
    path = tmp_path / "pom.xml"
    path.write_text(POM, encoding="utf-8")
    assert read_version(path) == Ok(Version(1, 4, 0, snapshot=True))


def test_write_pom_preserves_everything_else(tmp_path: Path) -> None:
    path = tmp_path / "pom.xml"
    path.write_text(POM, encoding="utf-8")
    assert write_version(path, Version(1, 4, 0)) == Ok(None)
    text = path.read_text(encoding="utf-8")
    assert text == POM.replace("<version>1.4.0-SNAPSHOT</version>", "<version>1.4.0</version>")


def test_plain_version_file(tmp_path: Path) -> None:
    path = tmp_path / "VERSION"
    path.write_text("2.0.0-SNAPSHOT\n", encoding="utf-8")
    assert read_version(path) == Ok(Version(2, 0, 0, snapshot=True))
    write_version(path, Version(2, 0, 0))
    assert path.read_text(encoding="utf-8") == "2.0.0\n"


def test_missing_file(tmp_path: Path) -> None:
    result = read_version(tmp_path / "VERSION")
    assert isinstance(result, Err)
    assert result.error.kind == "version_file"


def test_unsupported_version(tmp_path: Path) -> None:
    path = tmp_path / "VERSION"
    path.write_text("1.0-RC1\n", encoding="utf-8")
    result = read_version(path)
    assert isinstance(result, Err)
    assert result.error.kind == "invalid_version"
