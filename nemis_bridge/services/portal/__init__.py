# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""NEMIS web portal session layer.

This package makes the portal's stateful postback protocol usable as a
sequence of composable operations. It includes:
- SessionClient: One sequential, authenticated conversation with the portal
- SessionState: Immutable hidden-state token set replayed on each postback
- RecordExtractor: Field maps from grid and detail markup
- selectors: Every literal markup identifier the package depends on

Usage:
    from nemis_bridge.services.portal import PortalCredentials, SessionClient

    async with SessionClient(settings.portal) as session:
        await session.authenticate(PortalCredentials(username, password))
"""

from nemis_bridge.services.portal.exceptions import (
    AuthenticationError,
    CapacityExhaustedError,
    CaptureFailedError,
    ConflictError,
    ErrorKind,
    PortalError,
    PrerequisiteError,
    ProtocolError,
    RequestFailedError,
    SessionExpiredError,
    TransportError,
    UnrecognizedResponseError,
)
from nemis_bridge.services.portal.extractor import FieldMap, RecordExtractor
from nemis_bridge.services.portal.session import (
    ListingCategory,
    Page,
    PortalCredentials,
    SessionClient,
)
from nemis_bridge.services.portal.state import SessionState

__all__ = [
    # Session
    "SessionClient",
    "SessionState",
    "PortalCredentials",
    "ListingCategory",
    "Page",
    # Extraction
    "RecordExtractor",
    "FieldMap",
    # Exceptions
    "ErrorKind",
    "PortalError",
    "TransportError",
    "AuthenticationError",
    "SessionExpiredError",
    "ProtocolError",
    "PrerequisiteError",
    "CapacityExhaustedError",
    "RequestFailedError",
    "CaptureFailedError",
    "UnrecognizedResponseError",
    "ConflictError",
]
