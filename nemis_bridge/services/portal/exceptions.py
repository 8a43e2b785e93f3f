# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Custom exceptions for NEMIS portal operations.

This module defines the exception hierarchy shared by the session layer and
the learner lifecycle:
- PortalError: Base exception for all portal-related errors
- TransportError: Network, timeout, DNS or gateway failures
- AuthenticationError / SessionExpiredError: Credentials or session invalid
- ProtocolError: Expected hidden state or markup was absent
- PrerequisiteError / CapacityExhaustedError: Business rules on the portal
- RequestFailedError / CaptureFailedError / UnrecognizedResponseError:
  The portal answered without a recognized success marker
- ConflictError: The learner plausibly belongs to another institution

Every error carries a ``kind`` so callers can build exhaustive handling
without string-matching messages.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Closed set of failure kinds surfaced to callers."""

    TRANSPORT = "transport"
    AUTHENTICATION = "authentication"
    SESSION_EXPIRED = "session_expired"
    PROTOCOL = "protocol"
    PREREQUISITE = "prerequisite"
    CAPACITY_EXHAUSTED = "capacity_exhausted"
    REQUEST_FAILED = "request_failed"
    CAPTURE_FAILED = "capture_failed"
    UNRECOGNIZED_RESPONSE = "unrecognized_response"
    CONFLICT = "conflict"
    LOOKUP = "lookup"
    # A unit raised something other than a PortalError.
    INTERNAL = "internal"


class PortalError(Exception):
    """Base exception for all portal-related errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional error context.
        kind: Failure kind, fixed per subclass.
    """

    kind: ErrorKind = ErrorKind.PROTOCOL

    def __init__(self, message: str, details: dict | None = None):
        """Initialize portal error.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation with details if available."""
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class TransportError(PortalError):
    """Network-level failure talking to the portal.

    Never retried by the session layer.

    Attributes:
        path: Portal path of the failed request.
        cause: Short classification of the failure (timeout, connection_reset,
            address_not_found, gateway_timeout, ...).
    """

    kind = ErrorKind.TRANSPORT

    def __init__(
        self,
        message: str,
        path: str,
        cause: str | None = None,
        details: dict | None = None,
    ):
        """Initialize transport error.

        Args:
            message: Human-readable error description.
            path: Portal path of the failed request.
            cause: Short classification of the failure.
            details: Optional dictionary with additional error context.
        """
        self.path = path
        self.cause = cause
        super().__init__(message, details)

    def __str__(self) -> str:
        """Return string representation with path and cause."""
        base = f"{self.message} ({self.path})"
        if self.cause:
            base = f"[{self.cause}] {base}"
        return base


class AuthenticationError(PortalError):
    """Login was rejected or the success redirect never appeared."""

    kind = ErrorKind.AUTHENTICATION


class SessionExpiredError(PortalError):
    """The portal redirected to the login page mid-conversation.

    Callers re-authenticate and retry the whole operation.
    """

    kind = ErrorKind.SESSION_EXPIRED


class ProtocolError(PortalError):
    """Hidden state or expected markup was missing from a response."""

    kind = ErrorKind.PROTOCOL


class PrerequisiteError(PortalError):
    """A transition was attempted before the state it depends on."""

    kind = ErrorKind.PREREQUISITE


class CapacityExhaustedError(PortalError):
    """The institution has no vacancies left. Not retryable."""

    kind = ErrorKind.CAPACITY_EXHAUSTED


class RemoteMessageError(PortalError):
    """Base for failures that preserve the portal's own wording.

    Attributes:
        remote_message: Verbatim message shown by the portal, if any.
    """

    def __init__(
        self,
        message: str,
        remote_message: str | None = None,
        details: dict | None = None,
    ):
        """Initialize error with the portal's message.

        Args:
            message: Human-readable error description.
            remote_message: Verbatim message shown by the portal.
            details: Optional dictionary with additional error context.
        """
        self.remote_message = remote_message
        super().__init__(message, details)

    def __str__(self) -> str:
        """Return string representation with the remote message."""
        if self.remote_message:
            return f"{self.message}: {self.remote_message}"
        return self.message


class RequestFailedError(RemoteMessageError):
    """Placement request was not confirmed."""

    kind = ErrorKind.REQUEST_FAILED


class CaptureFailedError(RemoteMessageError):
    """Biodata capture was rejected by the portal."""

    kind = ErrorKind.CAPTURE_FAILED


class UnrecognizedResponseError(RemoteMessageError):
    """The portal answered with a page no success or failure marker matches."""

    kind = ErrorKind.UNRECOGNIZED_RESPONSE


class ConflictError(PortalError):
    """The learner's identifiers are in use by a learner elsewhere.

    Requires a human decision or an explicit transfer.

    Attributes:
        institution_code: Code of the institution currently holding the record.
        institution_name: Name of that institution.
        remote_name: Name on the remote record.
        remote_upi: UPI on the remote record.
    """

    kind = ErrorKind.CONFLICT

    def __init__(
        self,
        message: str,
        institution_code: str | None = None,
        institution_name: str | None = None,
        remote_name: str | None = None,
        remote_upi: str | None = None,
        details: dict | None = None,
    ):
        """Initialize conflict error.

        Args:
            message: Human-readable error description.
            institution_code: Code of the institution holding the record.
            institution_name: Name of that institution.
            remote_name: Name on the remote record.
            remote_upi: UPI on the remote record.
            details: Optional dictionary with additional error context.
        """
        self.institution_code = institution_code
        self.institution_name = institution_name
        self.remote_name = remote_name
        self.remote_upi = remote_upi
        super().__init__(message, details)

    def __str__(self) -> str:
        """Return string representation naming the holding institution."""
        base = self.message
        if self.remote_name:
            base = f"{base}; {self.remote_name}"
        if self.remote_upi:
            base = f"{base}, UPI {self.remote_upi}"
        if self.institution_code:
            base = f"{base} at {self.institution_name or ''} ({self.institution_code})"
        return base
