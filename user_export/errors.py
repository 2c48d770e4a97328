from __future__ import annotations

from typing import Sequence


class UserExportError(Exception):
    """Base class for failures that abort an export run."""


class ConfigError(UserExportError, ValueError):
    """Raised when the YAML configuration or CLI overrides are invalid."""


class OutputPathError(UserExportError):
    """Raised when the output file cannot be used or written."""


class DirectoryQueryError(UserExportError):
    """Raised when the directory service cannot be queried."""


class SkipPatternError(UserExportError):
    """Raised when the skip-user patterns do not compile into one expression."""

    def __init__(self, patterns: Sequence[str], reason: str):
        self.patterns = list(patterns)
        super().__init__(f"Invalid skip-user pattern(s) {self.patterns}: {reason}")
