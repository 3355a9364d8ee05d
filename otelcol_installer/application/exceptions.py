"""
Core business exceptions for the collector installer.

This module defines a hierarchy of custom exceptions to allow for granular
error handling and clear separation of failure domains. Every exception here
aborts the run; problems that only warrant a warning are collected on the
reports instead of being raised.
"""

from typing import Any, Dict, Optional


class InstallerError(Exception):
    """Base exception for all component-specific errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.step: Optional[str] = None
        self.context: Dict[str, Any] = {}

    def annotate(self, step: str, context: Dict[str, Any]) -> "InstallerError":
        """Attach the failing step and its run context for the top-level handler."""
        self.step = step
        self.context = {k: v for k, v in context.items() if v is not None}
        return self


# --- Configuration Errors ---

class ConfigurationError(InstallerError):
    """Raised for errors related to installer settings."""
    pass


# --- Infrastructure Errors ---

class InfrastructureError(InstallerError):
    """Base class for errors related to external systems (network, commands)."""
    pass


class FetchError(InfrastructureError):
    """Raised when a download does not end with an HTTP 200 response."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status

    @property
    def status_code(self) -> str:
        """The status as curl would print it, '000' for transport failures."""
        return "000" if self.status is None else str(self.status)


class CommandError(InfrastructureError):
    """Raised when an external command exits with a non-zero status."""

    def __init__(self, message: str, returncode: int):
        super().__init__(message)
        self.returncode = returncode


# --- Domain/Business Logic Errors ---

class DomainError(InstallerError):
    """Base class for errors related to installation logic failures."""
    pass


class UnsupportedPlatform(DomainError):
    """Raised when the OS or architecture cannot be mapped to an artifact."""
    pass


class InstallError(DomainError):
    """Raised when the artifact cannot be applied to the host."""

    def __init__(self, message: str, exit_code: Optional[int] = None):
        super().__init__(message)
        self.exit_code = exit_code


class BinaryNotFound(InstallError):
    """Raised when an extracted archive lacks the collector binary."""
    pass


class ConfigError(DomainError):
    """Raised when a replacement configuration cannot be installed."""
    pass
