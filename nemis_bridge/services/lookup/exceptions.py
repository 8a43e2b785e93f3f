# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Custom exceptions for the NEMIS lookup API."""

from nemis_bridge.services.portal.exceptions import ErrorKind, PortalError


class LookupApiError(PortalError):
    """Error from the lookup API.

    Attributes:
        status_code: HTTP status code from the API response.
        response_body: Raw response body if available.
    """

    kind = ErrorKind.LOOKUP

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
        details: dict | None = None,
    ):
        """Initialize lookup API error.

        Args:
            message: Human-readable error description.
            status_code: HTTP status code from the API response.
            response_body: Raw response body if available.
            details: Optional dictionary with additional error context.
        """
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(message, details)

    def __str__(self) -> str:
        """Return string representation with status code."""
        base = self.message
        if self.status_code:
            base = f"[{self.status_code}] {base}"
        if self.details:
            base = f"{base} - Details: {self.details}"
        return base


class LookupNotFoundError(LookupApiError):
    """The lookup API has no record for the identifier."""

    pass
