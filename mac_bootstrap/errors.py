"""Exceptions raised while bootstrapping a Mac."""

from __future__ import annotations

from typing import Optional, Sequence


class BootstrapError(Exception):
    """Base exception for all mac-bootstrap errors."""


class ConfigurationError(BootstrapError):
    """Invalid or unreadable configuration file."""


class ManifestError(BootstrapError):
    """A Brewfile or preference manifest that cannot be understood."""

    def __init__(self, message: str, source: Optional[str] = None, line: Optional[int] = None) -> None:
        location = ""
        if source and line is not None:
            location = f"{source}:{line}: "
        elif source:
            location = f"{source}: "
        elif line is not None:
            location = f"line {line}: "
        super().__init__(f"{location}{message}")
        self.source = source
        self.line = line


class CommandError(BootstrapError):
    """An external command exited with a non-zero status."""

    def __init__(self, argv: Sequence[str], returncode: int, stderr: str = "") -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr.strip()
        message = f"`{' '.join(self.argv)}` exited with status {returncode}"
        if self.stderr:
            message = f"{message}: {self.stderr}"
        super().__init__(message)
