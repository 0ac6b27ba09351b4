from __future__ import annotations

from relflow.services.doccheck import check_markdown, extract_snippets

DOC = """# Release strategy

```yaml
trigger:
  branches:
    include: [develop, main]
```

Some prose.

```xml
<distributionManagement>
  <repository><id>releases</id></repository>
</distributionManagement>
<scm><tag>HEAD</tag></scm>
```

~~~yml
a: 1
---
b: 2
~~~

```bash
mvn -B release:prepare
```
"""


def test_extract_only_yaml_and_xml() -> None:
    snippets = extract_snippets(DOC)
    assert [(s.lang, s.line) for s in snippets] == [("yaml", 4), ("xml", 12), ("yaml", 19)]


def test_valid_document() -> None:
    assert all(r.ok for r in check_markdown(DOC))


def test_broken_yaml_reports_line() -> None:
    doc = "intro\n\n```yaml\nkey: [unclosed\n```\n"
    (report,) = check_markdown(doc)
    assert not report.ok
    assert report.snippet.line == 4
    assert report.error


def test_broken_xml() -> None:
    doc = "```xml\n<project><version>1.0</project>\n```\n"
    (report,) = check_markdown(doc)
    assert not report.ok


def test_xml_declaration_at_start_is_allowed() -> None:
    doc = '```xml\n<?xml version="1.0"?>\n<settings/>\n```\n'
    assert all(r.ok for r in check_markdown(doc))
