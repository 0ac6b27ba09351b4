"""Git operations used at release points."""

from .repository import GitError, Repository

__all__ = ["GitError", "Repository"]
