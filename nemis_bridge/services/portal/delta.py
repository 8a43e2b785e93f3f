# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Parser for ASP.NET partial-rendering (MS AJAX delta) responses.

Async postbacks answer with a pipe-delimited body instead of HTML:
``length|type|id|content|`` repeated, where ``length`` is the exact length of
``content``. Hidden state arrives as ``hiddenField`` segments and navigation as
a ``pageRedirect`` segment.
"""

from dataclasses import dataclass
from urllib.parse import unquote


@dataclass(frozen=True)
class DeltaSegment:
    """One segment of a delta response."""

    type: str
    id: str
    content: str


def parse_delta(body: str) -> list[DeltaSegment]:
    """Split a delta response into segments.

    Args:
        body: Raw response text.

    Returns:
        The segments in order, or an empty list if ``body`` is not a
        well-formed delta response (for example a full HTML page).
    """
    body = body.rstrip()
    segments: list[DeltaSegment] = []
    position = 0
    while position < len(body):
        try:
            length_end = body.index("|", position)
            length = int(body[position:length_end])
            type_end = body.index("|", length_end + 1)
            id_end = body.index("|", type_end + 1)
        except ValueError:
            return []
        start = id_end + 1
        end = start + length
        if length < 0 or end >= len(body) or body[end] != "|":
            return []
        segments.append(
            DeltaSegment(
                type=body[length_end + 1 : type_end],
                id=body[type_end + 1 : id_end],
                content=body[start:end],
            )
        )
        position = end + 1
    return segments


def hidden_fields(segments: list[DeltaSegment]) -> dict[str, str]:
    """Collect ``hiddenField`` segments into a name to value mapping."""
    return {s.id: s.content for s in segments if s.type == "hiddenField"}


def redirect_target(segments: list[DeltaSegment]) -> str | None:
    """Return the decoded ``pageRedirect`` target, if the response has one."""
    for segment in segments:
        if segment.type == "pageRedirect":
            return unquote(segment.content)
    return None
