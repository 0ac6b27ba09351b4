"""Tests for git/repository.py."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

from relflow.core.result import Err, Ok
from relflow.git.repository import Repository
from relflow.platform.process import ProcessError


def _fail(stderr: str, returncode: int = 1) -> Err[ProcessError]:
    return Err(ProcessError(command=("git",), returncode=returncode, stdout="", stderr=stderr))


class TestReadOperations:
    def test_exists(self, tmp_path: Path) -> None:
        repo = Repository(tmp_path)
        assert not repo.exists()
        (tmp_path / ".git").mkdir()
        assert repo.exists()

    def test_is_clean(self, tmp_path: Path) -> None:
        repo = Repository(tmp_path)
        with patch.object(repo, "_run", return_value=Ok("")):
            assert repo.is_clean() is True
        with patch.object(repo, "_run", return_value=Ok(" M pom.xml\n")):
            assert repo.is_clean() is False
        with patch.object(repo, "_run", return_value=_fail("not a repo")):
            assert repo.is_clean() is False

    def test_current_branch(self, tmp_path: Path) -> None:
        repo = Repository(tmp_path)
        with patch.object(repo, "_run", return_value=Ok("release/1.4.0\n")):
            assert repo.current_branch() == "release/1.4.0"
        with patch.object(repo, "_run", return_value=Ok("HEAD\n")):
            assert repo.current_branch() is None

    def test_tags(self, tmp_path: Path) -> None:
        repo = Repository(tmp_path)
        with patch.object(repo, "_run", return_value=Ok("v1.0.0\nv1.1.0\n\n")):
            assert repo.tags() == Ok(frozenset({"v1.0.0", "v1.1.0"}))


class TestWriteOperations:
    def test_create_tag_is_annotated_and_never_forced(self, tmp_path: Path) -> None:
        repo = Repository(tmp_path)
        mock_run = MagicMock(return_value=Ok(""))
        with patch.object(repo, "_run", mock_run):
            assert repo.create_tag("v1.2.0", message="release 1.2.0") == Ok(None)
        args = mock_run.call_args.args[0]
        assert args == ["tag", "-a", "v1.2.0", "-m", "release 1.2.0"]
        assert "--force" not in args and "-f" not in args

    def test_create_tag_failure(self, tmp_path: Path) -> None:
        repo = Repository(tmp_path)
        failure = _fail("fatal: tag 'v1.2.0' already exists\n", 128)
        with patch.object(repo, "_run", return_value=failure):
            result = repo.create_tag("v1.2.0", message="release")
        assert isinstance(result, Err)
        assert result.error.command == "tag v1.2.0"
        assert result.error.message == "fatal: tag 'v1.2.0' already exists"
        assert result.error.returncode == 128

    def test_commit_file_adds_then_commits_only_that_path(self, tmp_path: Path) -> None:
        repo = Repository(tmp_path)
        mock_run = MagicMock(return_value=Ok(""))
        pom = tmp_path / "pom.xml"
        with patch.object(repo, "_run", mock_run):
            assert repo.commit_file(pom, message="prepare release v1.2.0") == Ok(None)
        calls = [c.args[0] for c in mock_run.call_args_list]
        assert calls == [
            ["add", "--", str(pom)],
            ["commit", "-m", "prepare release v1.2.0", "--", str(pom)],
        ]

    def test_run_uses_git_dash_c(self, tmp_path: Path) -> None:
        repo = Repository(tmp_path)
        with patch("relflow.git.repository.run_process", return_value=Ok("")) as mock_proc:
            repo.tags()
        cmd = mock_proc.call_args.args[0]
        assert cmd[:3] == ["git", "-C", str(tmp_path)]
        assert mock_proc.call_args.kwargs["timeout"] == 30.0

