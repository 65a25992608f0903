"""
Error taxonomy for sessionkit.

Every failure raised while assembling a session factory derives from
SessionKitError, so hosts can catch one type at the build boundary.

Fatal vs non-fatal:
    - Fatal errors abort the whole build; no partial factory is exposed.
    - ScanLoadFailure is never raised by the scanner. It is recorded in
      ScanResult.failures and logged, and the scan carries on.

There is no retry policy anywhere: every fatal condition surfaces once
to the caller of ConfigurationAssembler.build().
"""

from __future__ import annotations


class SessionKitError(Exception):
    """Base exception for configuration assembly errors."""

    def __init__(
        self,
        message: str,
        *,
        resource: str | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.resource = resource
        self.cause = cause

    def __str__(self) -> str:
        if self.resource:
            return f"[{self.resource}] {self.args[0]}"
        return str(self.args[0])


class ConfigConflict(SessionKitError):
    """Raised when mutually exclusive configuration sources are both supplied."""


class MissingRequired(SessionKitError):
    """Raised when a mandatory input (data source, factory builder) is absent."""


class ResourceUnreadable(SessionKitError):
    """Raised when a descriptor or mapper stream cannot be opened."""


class ParseFailure(SessionKitError):
    """Raised when a descriptor or mapper resource fails to parse."""


class DatabaseIdLookupFailure(SessionKitError):
    """Raised when the database-id provider fails against the data source."""


class RegistrationError(SessionKitError):
    """Raised for malformed alias, handler, plugin, driver or cache input."""


class ConfigurationFrozen(RegistrationError):
    """Raised when a frozen configuration is asked to accept a registration."""


class LifecycleError(SessionKitError):
    """Raised when lifecycle entry points are invoked out of order."""


class ScanLoadFailure(SessionKitError):
    """
    A discovered candidate type that could not be read or loaded.

    Recorded by the scanner, never raised by it.

    Attributes:
        candidate: Dotted name of the module or class that failed
        reason: Short description of the underlying error
    """

    def __init__(self, candidate: str, reason: str, *, cause: BaseException | None = None):
        super().__init__(f"Cannot load '{candidate}': {reason}", resource=None, cause=cause)
        self.candidate = candidate
        self.reason = reason
