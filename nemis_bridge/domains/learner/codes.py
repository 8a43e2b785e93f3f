# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Form codes and name parts the portal's learner forms expect."""

import re
from dataclasses import dataclass
from datetime import date

_GRADE_PATTERN = re.compile(r"^(form|pp|grade)\s*(\d{1,2})$")

# Level name -> (first code, highest number)
_GRADE_BASES: dict[str, tuple[int, int]] = {
    "form": (12, 4),
    "pp": (16, 2),
    "grade": (18, 11),
}

# Checked in order; the first substring found wins.
_NATIONALITY_CODES: tuple[tuple[tuple[str, ...], int], ...] = (
    (("ke",), 1),
    (("su",), 2),
    (("tan",), 3),
    (("som",), 4),
    (("et",), 5),
    (("eu", "ame"), 6),
    (("afr",), 7),
    (("ot",), 8),
)
DEFAULT_NATIONALITY_CODE = 1

_MEDICAL_CONDITION_CODES: tuple[tuple[str, int], ...] = (
    ("an", 1),  # anaemia
    ("as", 2),  # asthma
    ("con", 3),  # convulsions
    ("dia", 4),  # diabetes
    ("epi", 5),  # epilepsy
)
NO_MEDICAL_CONDITION = 0


@dataclass(frozen=True)
class NameParts:
    """A learner name split the way the biodata form takes it."""

    surname: str
    first_name: str
    other_names: str


def grade_code(grade: str) -> int:
    """Map a grade name such as ``form 1``, ``pp 2`` or ``grade 7`` to its code.

    Raises:
        ValueError: If the grade is not one the portal knows.
    """
    normalized = " ".join((grade or "").lower().split())
    match = _GRADE_PATTERN.match(normalized)
    if match is None:
        raise ValueError(f"Unknown grade: {grade!r}")
    first_code, highest = _GRADE_BASES[match.group(1)]
    number = int(match.group(2))
    if not 1 <= number <= highest:
        raise ValueError(f"Unknown grade: {grade!r}")
    return first_code + number - 1


def nationality_code(nationality: str | None) -> int:
    """Map a nationality name to its code, Kenyan when unknown."""
    value = (nationality or "").strip().lower()
    if not value:
        return DEFAULT_NATIONALITY_CODE
    for needles, code in _NATIONALITY_CODES:
        if any(needle in value for needle in needles):
            return code
    return DEFAULT_NATIONALITY_CODE


def medical_condition_code(condition: str | None) -> int:
    """Map a medical condition name to its code, 0 for none or unknown."""
    value = (condition or "").strip().lower()
    for prefix, code in _MEDICAL_CONDITION_CODES:
        if value.startswith(prefix):
            return code
    return NO_MEDICAL_CONDITION


def split_names(name: str) -> NameParts:
    """Split a full name into surname, first name and other names.

    Three names split positionally. Two names leave the surname blank, which
    the form accepts as a single space. Longer names keep the first as
    surname, the last as other names and join the rest as the first name.

    Raises:
        ValueError: If fewer than two names are given.
    """
    tokens = (name or "").split()
    if len(tokens) < 2:
        raise ValueError(f"Expected at least two names, got {name!r}")
    if len(tokens) == 2:
        return NameParts(surname=" ", first_name=tokens[0], other_names=tokens[1])
    return NameParts(
        surname=tokens[0],
        first_name=" ".join(tokens[1:-1]),
        other_names=tokens[-1],
    )


def format_dob(value: date) -> str:
    """Format a date of birth as the form's M/D/YYYY."""
    return f"{value.month}/{value.day}/{value.year}"
