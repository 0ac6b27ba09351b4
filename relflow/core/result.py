"""Result type for explicit error handling.

Every fallible relflow operation returns `Result[T, E]` instead of raising,
so a failed gate or a rejected deploy is a value the caller must look at.

Usage:
    match plan_release(current=v, existing_tags=tags, bump="minor"):
        case Ok(plan):
            print(plan.tag)
        case Err(error):
            print(error.message)
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Ok[T]:
    """A successful result.

    Attributes:
        value: The success value.
    """

    value: T

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err[E]:
    """A failed result.

    Attributes:
        error: The error value.
    """

    error: E

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


type Result[T, E] = Ok[T] | Err[E]
