"""Tests for relflow.output.console module."""

from __future__ import annotations

import pytest

from relflow.output.console import ConsoleProtocol, MockConsole, RichConsole, Style


def test_style_str() -> None:
    assert str(Style.SUCCESS) == "success"
    assert str(Style.DIM) == "dim"


class TestMockConsole:
    def test_captures_levels(self) -> None:
        console = MockConsole()
        console.success("deployed")
        console.warning("waiting")
        console.error("rejected")
        console.info("dry-run")
        assert console.messages == [
            "OK deployed",
            "warning: waiting",
            "error: rejected",
            "info: dry-run",
        ]
        assert console.has_success() and console.has_warning() and console.has_error()

    def test_detail_respects_verbose(self) -> None:
        quiet = MockConsole(verbose=False)
        quiet.detail("sha256 abc")
        assert quiet.outputs == []

        loud = MockConsole()
        loud.detail("sha256 abc")
        assert loud.outputs[0].style == Style.DIM

    def test_table_rows(self) -> None:
        console = MockConsole()
        console.table(["run", "status"], [["run-1", "waiting"]])
        assert console.messages == ["run | status", "run-1 | waiting"]

    def test_find_and_clear(self) -> None:
        console = MockConsole()
        console.print("Build: succeeded")
        assert len(console.find("Build")) == 1
        console.clear()
        assert console.text == ""

    def test_satisfies_protocol(self) -> None:
        console: ConsoleProtocol = MockConsole()
        console.newline()


class TestRichConsole:
    def test_markup_is_escaped(self, capsys: pytest.CaptureFixture[str]) -> None:
        console = RichConsole()
        console.error("variables['[bold]x']")
        out = capsys.readouterr().out
        assert "variables['[bold]x']" in out

    def test_detail_hidden_unless_verbose(self, capsys: pytest.CaptureFixture[str]) -> None:
        RichConsole().detail("hidden")
        assert "hidden" not in capsys.readouterr().out
        RichConsole(verbose=True).detail("shown")
        assert "shown" in capsys.readouterr().out
