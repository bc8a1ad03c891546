"""Shared error types.

Wiring and configuration errors raise at startup. Runtime paths (submit,
deliver) log these and keep the prompt alive.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(eq=False)
class AppError(Exception):
    """Base error for application-level failures."""

    message: str
    cause: Exception | None = None

    def __str__(self) -> str:
        if self.cause is None:
            return self.message
        return f"{self.message} (cause: {self.cause})"


class DomainError(AppError):
    """Domain rule violation."""


class ValidationError(AppError):
    """Invalid segment configuration."""


class InfrastructureError(AppError):
    """IO/OS failures."""


class SchedulingError(InfrastructureError):
    """A worker pool could not be started or could not dispatch a job."""


class RegistrationError(DomainError):
    """Duplicate or missing handler registration for a job name."""
