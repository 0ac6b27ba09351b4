"""Syntax check for configuration snippets embedded in Markdown.

Every fenced block tagged yaml/yml or xml must parse. XML fragments made of
several sibling elements (typical `pom.xml` excerpts) are checked inside a
synthetic root; XML declarations are allowed only at the very start.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Literal

import yaml

SnippetLang = Literal["yaml", "xml"]

_FENCE_RE = re.compile(r"^(\s*)(`{3,}|~{3,})\s*([\w+-]*)")
_LANGS: dict[str, SnippetLang] = {"yaml": "yaml", "yml": "yaml", "xml": "xml"}
_XML_DECL_RE = re.compile(r"^\s*<\?xml[^>]*\?>")


@dataclass(frozen=True, slots=True)
class Snippet:
    lang: SnippetLang
    line: int
    text: str


@dataclass(frozen=True, slots=True)
class SnippetReport:
    snippet: Snippet
    error: str | None

    @property
    def ok(self) -> bool:
        return self.error is None


def extract_snippets(markdown: str) -> list[Snippet]:
    """Return yaml/xml fenced blocks with the 1-based line of their first content line."""
    snippets: list[Snippet] = []
    lines = markdown.splitlines()
    i = 0
    while i < len(lines):
        m = _FENCE_RE.match(lines[i])
        if m is None:
            i += 1
            continue
        fence = m.group(2)
        lang = _LANGS.get(m.group(3).lower())
        start = i + 1
        j = start
        while j < len(lines) and not lines[j].strip().startswith(fence):
            j += 1
        if lang is not None:
            snippets.append(Snippet(lang, start + 1, "\n".join(lines[start:j])))
        i = j + 1
    return snippets


def _check_yaml(text: str) -> str | None:
    try:
        for _ in yaml.safe_load_all(text):
            pass
    except yaml.YAMLError as e:
        return str(e).replace("\n", " ")
    return None


def _check_xml(text: str) -> str | None:
    body = _XML_DECL_RE.sub("", text, count=1)
    try:
        ET.fromstring(f"<snippet>{body}</snippet>")
    except ET.ParseError as e:
        return str(e)
    return None


def check_snippet(snippet: Snippet) -> SnippetReport:
    match snippet.lang:
        case "yaml":
            return SnippetReport(snippet, _check_yaml(snippet.text))
        case "xml":
            return SnippetReport(snippet, _check_xml(snippet.text))


def check_markdown(markdown: str) -> list[SnippetReport]:
    return [check_snippet(s) for s in extract_snippets(markdown)]
