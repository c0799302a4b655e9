"""Custom exceptions for the event definition extractor.

This module defines the exception hierarchy used throughout the library
to separate fatal precondition failures from per-item failures that are
logged and skipped.
"""

from __future__ import annotations

from typing import Optional


class EvtDefsError(Exception):
    """Base exception for all event definition extractor errors.

    All custom exceptions in this library inherit from this base class,
    allowing users to catch all extractor-related errors with a single except block.
    """

    pass


class PlatformNotSupportedError(EvtDefsError):
    """Raised when a Windows-only collaborator is used on another platform.

    Registry access and wevtutil provider enumeration only exist on Windows.
    """

    def __init__(self, platform: str) -> None:
        """Initialize the exception with the detected platform.

        Args:
            platform: The name of the detected operating system platform.
        """
        self.platform = platform
        super().__init__(
            f"Reading event definitions from the live system is only supported "
            f"on Windows. Current platform: {platform}"
        )


class DumperNotFoundError(EvtDefsError):
    """Raised when the external message dump tool cannot be found.

    This is checked before any scanning begins.
    """

    def __init__(self, executable: str) -> None:
        self.executable = executable
        super().__init__(
            f"Message dump tool not found: {executable}. Install it, add it to "
            "the system PATH, or point --dumper (or EVT_DEFS_DUMPER) at it."
        )


class KeyNotFoundError(EvtDefsError):
    """Raised by a key-value store when a key path does not exist."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Registry key not found: {path}")


class RegistryRootNotFoundError(EvtDefsError):
    """Raised when the event log root key is missing or unreadable."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(
            f"Event log registry root not found: {path}. "
            "Cannot enumerate legacy event sources."
        )


class DumpError(EvtDefsError):
    """Raised when the dump tool fails for a single resource file.

    Captures the return code and stderr of the failed invocation.
    """

    def __init__(
        self,
        message: str,
        return_code: Optional[int] = None,
        stderr: Optional[str] = None,
    ) -> None:
        """Initialize the dump error with execution details.

        Args:
            message: Human-readable error description.
            return_code: The exit code returned by the dump tool (if available).
            stderr: Error output from the dump tool (if available).
        """
        self.return_code = return_code
        self.stderr = stderr

        error_parts = [message]
        if return_code is not None:
            error_parts.append(f"Return code: {return_code}")
        if stderr:
            error_parts.append(f"Error output: {stderr}")

        super().__init__(" | ".join(error_parts))


class ParserError(EvtDefsError):
    """Base exception for dump output parsing errors."""

    pass


class MessageHeaderError(ParserError):
    """Raised when a message header line cannot be decoded.

    The block that starts at the offending line is skipped.
    """

    def __init__(self, line: str, line_number: int, details: str) -> None:
        self.line = line
        self.line_number = line_number
        self.details = details
        super().__init__(
            f"Malformed message header at line {line_number}: {details} ({line!r})"
        )


class ProviderEnumerationError(EvtDefsError):
    """Raised when provider names or provider metadata cannot be read."""

    def __init__(self, message: str, provider: Optional[str] = None) -> None:
        self.provider = provider
        if provider:
            message = f"[{provider}] {message}"
        super().__init__(message)


class OutputWriteError(EvtDefsError):
    """Raised when the output file cannot be written."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        self.path = path
        if path:
            message = f"{message}: {path}"
        super().__init__(message)
