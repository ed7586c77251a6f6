"""The failure record produced by every validation rule."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class FailedValidation:
    """A message for the user, with the underlying error where there is one."""

    user_message: str
    error: BaseException | None = None


def find_duplicates(items: Iterable[str]) -> list[str]:
    """Return every item that repeats an earlier one, in order of appearance."""
    seen: set[str] = set()
    duplicates: list[str] = []
    for item in items:
        if item in seen:
            duplicates.append(item)
        seen.add(item)
    return duplicates