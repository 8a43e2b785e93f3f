# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Typed views of lookup API responses.

The API returns flat, loosely-typed records. Keys are lower-cased and values
trimmed and lower-cased before validation; everything is optional.
"""

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class LearnerCategory(str, Enum):
    """Learner category reported by the lookup API (``xcat``)."""

    NOT_A_LEARNER = "0"
    CURRENT = "1"
    ALUMNUS = "2"


class LookupContact(BaseModel):
    """Parent or guardian contact on a lookup record."""

    upi: str | None = None
    name: str | None = None
    email: str | None = None
    tel: str | None = None
    id: str | None = None


class CurrentInstitution(BaseModel):
    """Institution currently holding the learner."""

    code: str | None = None
    name: str | None = None
    type: str | None = None
    level: str | None = None


class LookupLearner(BaseModel):
    """Learner record from ``/Learner/StudUpi/{upi_or_birth_certificate}``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    category: LearnerCategory | None = Field(default=None, alias="xcat")
    category_description: str | None = Field(default=None, alias="xcatdesc")
    upi: str | None = None
    name: str | None = Field(default=None, alias="names")
    gender: str | None = None
    dob: str | None = Field(default=None, alias="dob2")
    grade: str | None = Field(default=None, alias="class_name")
    birth_certificate_no: str | None = Field(default=None, alias="birth_cert_no")
    nhif_no: str | None = None
    phone_number: str | None = None
    email: str | None = Field(default=None, alias="email_address")
    address: str | None = Field(default=None, alias="postal_address")
    nationality: str | None = None
    county_code: str | None = None
    sub_county_code: str | None = None
    institution: CurrentInstitution = Field(default_factory=CurrentInstitution)
    father: LookupContact = Field(default_factory=LookupContact)
    mother: LookupContact = Field(default_factory=LookupContact)
    guardian: LookupContact = Field(default_factory=LookupContact)

    @model_validator(mode="before")
    @classmethod
    def from_flat_record(cls, data: object) -> object:
        """Group the API's flat keys into nested contact and institution models."""
        if not isinstance(data, dict):
            return data
        record = dict(data)
        if record.get("names"):
            record["names"] = str(record["names"]).replace(",", "")
        if not record.get("gender") and record.get("lgender"):
            record["gender"] = record["lgender"]
        record.setdefault(
            "institution",
            {
                "code": record.get("institution_code"),
                "name": record.get("institution_name"),
                "type": record.get("institution_type"),
                "level": record.get("institution_level_code"),
            },
        )
        for role in ("father", "mother", "guardian"):
            record.setdefault(
                role,
                {
                    "upi": record.get(f"{role}_upi"),
                    "name": record.get(f"{role}_name"),
                    "email": record.get(f"{role}_email"),
                    "tel": record.get(f"{role}_contacts"),
                    "id": record.get(f"{role}_idno"),
                },
            )
        return record


class AdmissionResults(BaseModel):
    """Placement results from ``/FormOne/Results/{index_no}``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    index_no: str | None = None
    name: str | None = None
    gender: str | None = Field(default=None, alias="ge")
    year_of_birth: str | None = Field(default=None, alias="yob")
    citizenship: str | None = None
    marks: str | None = Field(default=None, alias="tot")
    primary_school_name: str | None = Field(default=None, alias="school_name")
    primary_school_code: str | None = Field(default=None, alias="school_code")
    district_code: str | None = None
    district_name: str | None = None
    selected_school: str | None = None
    school_category: str | None = None


# =============================================================================
# Joiner placement status
# =============================================================================

_ADMISSION_PATTERN = re.compile(
    r"^(?P<code>\d+)\s+(?P<name>.+?)\s*school type:\s*(?P<type>[a-z ]+?)\W*"
    r"school category:\s*(?P<category>.+)$",
    re.IGNORECASE,
)
_REPORTED_CAPTURED_PATTERN = re.compile(
    r"^(?P<code>\d+):\s*(?P<name>.+), type:\s*(?P<type>.*), category:\s*(?P<category>.*),"
    r" upi:\s*(?P<upi>.*)$",
    re.IGNORECASE,
)


def _parse_label(data: object, key: str, pattern: re.Pattern) -> object:
    if not isinstance(data, dict):
        return data
    record = dict(data)
    match = pattern.match(str(record.get(key) or "").strip())
    if match:
        for name, value in match.groupdict().items():
            record.setdefault(name, value.strip() or None)
    return record


class AdmissionPlacement(BaseModel):
    """Where a joiner is placed, from ``/FormOne/Admission/{index_no}``.

    The API returns one label such as ``"12345678 moi girls school type:girls,
    school category:national"``; its parts are parsed out when they match.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    method: str | None = None
    label: str | None = Field(default=None, alias="schooladmitted")
    code: str | None = None
    name: str | None = None
    type: str | None = None
    category: str | None = None
    placement_category: str | None = Field(default=None, alias="category2")

    @model_validator(mode="before")
    @classmethod
    def from_label(cls, data: object) -> object:
        return _parse_label(data, "schooladmitted", _ADMISSION_PATTERN)


class ReportedJoiner(BaseModel):
    """A joiner's reporting record, from ``/FormOne/Reported/{school}/{index_no}``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    index_no: str | None = None
    institution_code: str | None = None
    institution_name: str | None = Field(default=None, alias="institutionname")
    upi: str | None = None
    birth_certificate_no: str | None = Field(default=None, alias="birthcert")
    date_reported: str | None = Field(default=None, alias="datereported")
    captured_by: str | None = Field(default=None, alias="capturedby")
    name: str | None = None


class ReportedCaptured(BaseModel):
    """Institution a joiner reported to and was captured at.

    From ``/FormOne/ReportedCaptured/{index_no}``, whose single label reads
    ``"<code>: <name>, type: <type>, category: <category>, upi: <upi>"``.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    label: str | None = Field(default=None, alias="reportedlabel")
    code: str | None = None
    name: str | None = None
    type: str | None = None
    category: str | None = None
    upi: str | None = None

    @model_validator(mode="before")
    @classmethod
    def from_label(cls, data: object) -> object:
        return _parse_label(data, "reportedlabel", _REPORTED_CAPTURED_PATTERN)


class JoinerStatus(BaseModel):
    """What the lookup API knows about a joiner's placement.

    Each part is None when the API had no record for it.
    """

    index_no: str
    admission: AdmissionPlacement | None = None
    reported: ReportedJoiner | None = None
    captured: ReportedCaptured | None = None

    def reported_at(self, institution_code: str) -> bool:
        """Check whether the joiner reported to the given institution."""
        if self.reported is None:
            return False
        code = (self.reported.institution_code or "").strip().lower()
        return bool(code) and code == institution_code.strip().lower()

    @property
    def upi(self) -> str | None:
        """UPI issued to the joiner, from whichever record carries one."""
        if self.reported is not None and self.reported.upi:
            return self.reported.upi
        return self.captured.upi if self.captured is not None else None
