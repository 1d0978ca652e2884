# Copyright (c) 2024 Ansilite Contributors
# MIT License

"""
Ansilite Error Classes.

All custom exceptions for clear error handling and exit codes.
Every error is local to one host unless fail_fast escalates it to a
playbook-wide cancellation.
"""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ansilite.engine.results import PlaybookOutcome


class ExitCode(enum.IntEnum):
    """Process exit codes."""

    SUCCESS = 0
    GENERIC_ERROR = 1
    HOST_FAILED = 2
    PARSE_ERROR = 3
    KEYBOARD_INTERRUPT = 130


class AnsiliteError(Exception):
    """Base exception for all Ansilite errors."""

    exit_code: int = ExitCode.GENERIC_ERROR

    def __init__(self, message: str, details: str | None = None) -> None:
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}\n  Details: {self.details}"
        return self.message


class ParseError(AnsiliteError):
    """Error reading or validating a playbook file."""

    exit_code: int = ExitCode.PARSE_ERROR

    def __init__(
        self,
        message: str,
        file_path: str | None = None,
        details: str | None = None,
    ) -> None:
        self.file_path = file_path
        location = f" in {file_path}" if file_path else ""
        super().__init__(f"Parse error{location}: {message}", details)


class ConfigurationError(AnsiliteError):
    """A host or task is misconfigured (missing credentials, unknown type)."""

    exit_code: int = ExitCode.HOST_FAILED


class UnknownModuleError(ConfigurationError):
    """A task refers to a module type nobody registered."""

    def __init__(self, module: str, available: list[str] | None = None) -> None:
        self.module = module
        details = None
        if available:
            details = f"available: {', '.join(sorted(available))}"
        super().__init__(f"Unknown task type: {module}", details)


class ConnectionError(AnsiliteError):
    """Error connecting to a remote host."""

    exit_code: int = ExitCode.HOST_FAILED

    def __init__(
        self,
        host: str,
        message: str,
        connection_type: str | None = None,
        details: str | None = None,
    ) -> None:
        self.host = host
        self.connection_type = connection_type
        conn_info = f" ({connection_type})" if connection_type else ""
        super().__init__(f"Connection to {host}{conn_info} failed: {message}", details)


class TransferError(AnsiliteError):
    """A file transfer or permission change over the session failed."""

    exit_code: int = ExitCode.HOST_FAILED

    def __init__(self, host: str, path: str, message: str) -> None:
        self.host = host
        self.path = path
        super().__init__(f"Transfer to {host}:{path} failed: {message}")


class ModuleError(AnsiliteError):
    """Error executing a module on a host."""

    exit_code: int = ExitCode.HOST_FAILED

    def __init__(
        self,
        module: str,
        host: str,
        message: str,
        rc: int | None = None,
        stdout: str | None = None,
        stderr: str | None = None,
    ) -> None:
        self.module = module
        self.host = host
        self.rc = rc
        self.stdout = stdout
        self.stderr = stderr

        details_parts = []
        if rc is not None:
            details_parts.append(f"rc={rc}")
        if stderr:
            details_parts.append(f"stderr: {stderr.strip()[:200]}")

        super().__init__(
            f"Module '{module}' failed on {host}: {message}",
            "; ".join(details_parts) if details_parts else None
        )


class MissingArtifactError(ModuleError):
    """A local file a task needs does not exist or cannot be read."""

    def __init__(self, module: str, host: str, path: str, reason: str = "") -> None:
        self.path = path
        message = f"Local file not found: {path}"
        if reason:
            message += f" ({reason})"
        super().__init__(module, host, message)


class PlaybookFailedError(AnsiliteError):
    """At least one host failed while running a playbook."""

    exit_code: int = ExitCode.HOST_FAILED

    def __init__(self, path: str, outcome: Optional["PlaybookOutcome"] = None) -> None:
        self.path = path
        self.outcome = outcome
        details = None
        if outcome is not None:
            details = "; ".join(
                f"{o.host}: {o.describe()}" for o in outcome.failures
            ) or None
        super().__init__(f"Playbook {path} failed on one or more hosts", details)
