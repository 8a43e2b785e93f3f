# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Hidden postback state of one portal conversation.

A SessionState is an immutable value. The session client captures a new one
from every response and replays it on the next request; nothing else builds
or edits one. Contents are opaque and never interpreted, with one exception:
a few confirmations are only visible inside the decoded view state.
"""

import base64
import binascii
from dataclasses import dataclass

from bs4 import BeautifulSoup

from nemis_bridge.services.portal import selectors as sel
from nemis_bridge.services.portal.delta import DeltaSegment, hidden_fields


@dataclass(frozen=True)
class SessionState:
    """Hidden-state token set captured from one response.

    Attributes:
        view_state: Opaque view state blob.
        view_state_generator: View state generator tag.
        event_validation: Event validation token.
        last_focus: Last focused control.
        event_target: Pending event target.
        event_argument: Pending event argument.
        view_state_encrypted: Encryption marker field.
    """

    view_state: str
    view_state_generator: str = ""
    event_validation: str = ""
    last_focus: str = ""
    event_target: str = ""
    event_argument: str = ""
    view_state_encrypted: str = ""

    def __repr__(self) -> str:
        return f"SessionState(view_state=<{len(self.view_state)} chars>)"

    @classmethod
    def from_html(cls, soup: BeautifulSoup) -> "SessionState | None":
        """Capture state from the hidden inputs of a full page."""

        def value(field: str) -> str:
            node = soup.find("input", id=field)
            return (node.get("value") or "") if node is not None else ""

        view_state = value(sel.VIEW_STATE)
        if not view_state:
            return None
        return cls(
            view_state=view_state,
            view_state_generator=value(sel.VIEW_STATE_GENERATOR),
            event_validation=value(sel.EVENT_VALIDATION),
            last_focus=value(sel.LAST_FOCUS),
            event_target=value(sel.EVENT_TARGET),
            event_argument=value(sel.EVENT_ARGUMENT),
            view_state_encrypted=value(sel.VIEW_STATE_ENCRYPTED),
        )

    @classmethod
    def from_delta(cls, segments: list[DeltaSegment]) -> "SessionState | None":
        """Capture state from the hiddenField segments of a delta response."""
        fields = hidden_fields(segments)
        if not (fields.get(sel.VIEW_STATE) or fields.get(sel.VIEW_STATE_GENERATOR)):
            return None
        return cls(
            view_state=fields.get(sel.VIEW_STATE, ""),
            view_state_generator=fields.get(sel.VIEW_STATE_GENERATOR, ""),
            event_validation=fields.get(sel.EVENT_VALIDATION, ""),
            last_focus=fields.get(sel.LAST_FOCUS, ""),
            event_target=fields.get(sel.EVENT_TARGET, ""),
            event_argument=fields.get(sel.EVENT_ARGUMENT, ""),
        )

    def as_form(
        self,
        event_target: str | None = None,
        event_argument: str | None = None,
    ) -> dict[str, str]:
        """Render the state as postback form fields.

        Args:
            event_target: Control that fired the postback, overriding the
                captured pending target.
            event_argument: Argument of the postback, overriding the captured
                pending argument.
        """
        return {
            sel.EVENT_TARGET: self.event_target if event_target is None else event_target,
            sel.EVENT_ARGUMENT: self.event_argument if event_argument is None else event_argument,
            sel.LAST_FOCUS: self.last_focus,
            sel.VIEW_STATE: self.view_state,
            sel.VIEW_STATE_GENERATOR: self.view_state_generator,
            sel.VIEW_STATE_ENCRYPTED: self.view_state_encrypted,
            sel.EVENT_VALIDATION: self.event_validation,
        }

    def decoded_view_state(self) -> str:
        """Return the view state blob base64-decoded as text.

        Undecodable blobs yield an empty string.
        """
        blob = self.view_state + "=" * (-len(self.view_state) % 4)
        try:
            return base64.b64decode(blob).decode("utf-8", errors="ignore")
        except (binascii.Error, ValueError):
            return ""
