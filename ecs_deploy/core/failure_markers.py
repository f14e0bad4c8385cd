"""Failure detection over migration log output.

A detector is any callable taking the ordered log lines and returning True
when the migration must be treated as failed.
"""

import re
from collections.abc import Sequence
from typing import Protocol

from ..constants import DEFAULT_FAILURE_MARKER


class FailureDetector(Protocol):
    """Decides from the log lines whether a migration failed."""

    def __call__(self, lines: Sequence[str]) -> bool: ...


class MarkerDetector:
    """Failed iff some line contains ``marker`` as a substring."""

    def __init__(self, marker: str = DEFAULT_FAILURE_MARKER):
        if not marker:
            raise ValueError("failure marker must not be empty")
        self.marker = marker

    def __call__(self, lines: Sequence[str]) -> bool:
        return any(self.marker in line for line in lines)

    def __repr__(self) -> str:
        return f"MarkerDetector({self.marker!r})"


class PatternDetector:
    """Failed iff some line matches the regular expression ``pattern``."""

    def __init__(self, pattern: str | re.Pattern[str]):
        self.pattern = re.compile(pattern) if isinstance(pattern, str) else pattern

    def __call__(self, lines: Sequence[str]) -> bool:
        return any(self.pattern.search(line) for line in lines)

    def __repr__(self) -> str:
        return f"PatternDetector({self.pattern.pattern!r})"
