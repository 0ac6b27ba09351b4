"""Error codes for CLI exit status.

Every command maps its failure kind onto one of these codes so that CI
scripts can branch on the exit status of `relflow`.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    These values are used as process exit codes and should remain stable:
    - 0: Success
    - 1: User error (bad input, invalid arguments, unknown run)
    - 2: Environment error (no project root, git missing)
    - 3: Pipeline error (invalid definition, failed stage)
    - 4: Policy error (approval refused, redeploy rejected, immutable tag)
    - 5: I/O error (file not found, permission denied)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    PIPELINE_ERROR = 3
    POLICY_ERROR = 4
    IO_ERROR = 5

    def __str__(self) -> str:
        """Return human-readable name."""
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        """Check if this code indicates success."""
        return self == ErrorCode.OK
