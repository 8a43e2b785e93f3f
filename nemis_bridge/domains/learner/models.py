# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Data models for the learner domain.

This module defines Pydantic models and enums for:
- Local learner records and their transaction state
- Tagged outcomes of lifecycle transitions
- Reconciliation candidates and decisions
- Typed rows of the portal's learner listings

Listing rows are validated straight from RecordExtractor field maps, keyed by
the portal's column headers.
"""

from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from nemis_bridge.services.portal.exceptions import ErrorKind, PortalError


class Gender(str, Enum):
    """Learner gender as the portal forms take it."""

    MALE = "M"
    FEMALE = "F"

    @classmethod
    def parse(cls, value: "str | Gender | None") -> "Gender | None":
        """Parse free text such as ``male``, ``f`` or ``Female``."""
        if value is None or isinstance(value, Gender):
            return value
        initial = value.strip()[:1].upper()
        return cls(initial) if initial in ("M", "F") else None


class TransactionState(str, Enum):
    """Where one local learner stands in the remote system.

    New joiners move UNSUBMITTED -> REQUESTED -> ADMITTED -> CAPTURED ->
    REPORTED. Continuing learners move PENDING_CAPTURE -> CAPTURED.
    """

    UNSUBMITTED = "unsubmitted"
    REQUESTED = "requested"
    ADMITTED = "admitted"
    CAPTURED = "captured"
    REPORTED = "reported"
    PENDING_CAPTURE = "pending_capture"

    @property
    def rank(self) -> int:
        """Position along the new-joiner path; continuing learners rank as admitted."""
        return _STATE_RANK[self]

    def reached(self, other: "TransactionState") -> bool:
        """Check whether this state is at or beyond ``other``."""
        return self.rank >= other.rank


_STATE_RANK = {
    TransactionState.UNSUBMITTED: 0,
    TransactionState.REQUESTED: 1,
    TransactionState.ADMITTED: 2,
    TransactionState.PENDING_CAPTURE: 2,
    TransactionState.CAPTURED: 3,
    TransactionState.REPORTED: 4,
}


class TransferDirection(str, Enum):
    """Parallel transfer sub-state."""

    IN = "in"
    OUT = "out"


class Contact(BaseModel):
    """Parent or guardian contact triple."""

    name: str | None = None
    tel: str | None = None
    id: str | None = None

    @property
    def is_complete(self) -> bool:
        """The biodata form only takes contacts with all three fields."""
        return bool(self.name and self.tel and self.id)


class LocalLearner(BaseModel):
    """A learner as held by the local store.

    Attributes:
        id: Local identifier.
        name: Full name, surname first.
        grade: Grade name, for example ``form 1`` or ``grade 7``.
        birth_certificate_no: Birth certificate number.
        index_no: Admission index number of a joiner.
        adm_no: Local admission number.
        state: Transaction state in the remote system.
        transfer: Transfer sub-state, if a transfer is under way.
        upi: Remote identifier once known.
        error: Last error message recorded for the learner.
    """

    model_config = ConfigDict(validate_assignment=True)

    id: str
    name: str
    grade: str
    gender: Gender | None = None
    dob: date | None = None
    birth_certificate_no: str | None = None
    index_no: str | None = None
    adm_no: str | None = None
    marks: str | None = None
    kcpe_year: int | None = None
    father: Contact = Field(default_factory=Contact)
    mother: Contact = Field(default_factory=Contact)
    guardian: Contact = Field(default_factory=Contact)
    county: str | None = None
    sub_county: str | None = None
    nationality: str | None = None
    medical_condition: str | None = None
    is_special: bool = False
    address: str | None = None
    remarks: str | None = None
    requested_by: str | None = None
    selected_school_code: str | None = None
    selected_school_name: str | None = None
    nhif_no: str | None = None
    state: TransactionState = TransactionState.UNSUBMITTED
    transfer: TransferDirection | None = None
    upi: str | None = None
    error: str | None = None

    @field_validator("gender", mode="before")
    @classmethod
    def parse_gender(cls, value: object) -> object:
        if isinstance(value, str):
            return Gender.parse(value)
        return value

    @property
    def parent(self) -> Contact:
        """First complete contact, preferring father, then mother, then guardian."""
        for contact in (self.father, self.mother, self.guardian):
            if contact.is_complete:
                return contact
        return Contact()


class OutcomeStatus(str, Enum):
    """Result of one lifecycle transition."""

    SUCCEEDED = "succeeded"
    ALREADY_SATISFIED = "already_satisfied"
    FAILED = "failed"


class TransitionOutcome(BaseModel):
    """Closed result variant of a single-learner operation.

    Attributes:
        status: Whether the transition happened, was already done, or failed.
        state: Transaction state the learner is in afterwards.
        upi: Remote identifier, when the transition produced or confirmed one.
        nhif_no: NHIF number, when the transition registered the learner with NHIF.
        transfer: Transfer sub-state afterwards, when the transition started one.
        error_kind: Failure kind, only set when failed.
        remote_message: The portal's own wording, when it gave any.
        message: Human-readable summary.
    """

    status: OutcomeStatus
    state: TransactionState
    upi: str | None = None
    nhif_no: str | None = None
    transfer: TransferDirection | None = None
    error_kind: ErrorKind | None = None
    remote_message: str | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.status != OutcomeStatus.FAILED

    @classmethod
    def succeeded(
        cls,
        state: TransactionState,
        upi: str | None = None,
        message: str | None = None,
        remote_message: str | None = None,
    ) -> "TransitionOutcome":
        return cls(
            status=OutcomeStatus.SUCCEEDED,
            state=state,
            upi=upi,
            message=message,
            remote_message=remote_message,
        )

    @classmethod
    def already_satisfied(
        cls, state: TransactionState, upi: str | None = None
    ) -> "TransitionOutcome":
        return cls(status=OutcomeStatus.ALREADY_SATISFIED, state=state, upi=upi)

    @classmethod
    def failed(cls, state: TransactionState, error: PortalError) -> "TransitionOutcome":
        """Build a failed outcome from a typed error, keeping the portal's wording."""
        return cls(
            status=OutcomeStatus.FAILED,
            state=state,
            error_kind=error.kind,
            remote_message=getattr(error, "remote_message", None),
            message=str(error),
        )

    @classmethod
    def crashed(cls, state: TransactionState, error: BaseException) -> "TransitionOutcome":
        """Build a failed outcome for an error outside the portal error hierarchy."""
        return cls(
            status=OutcomeStatus.FAILED,
            state=state,
            error_kind=ErrorKind.INTERNAL,
            message=f"{type(error).__name__}: {error}",
        )


class MatchAction(str, Enum):
    """What a reconciliation decision asks the caller to do."""

    CAPTURE = "capture"
    ALREADY_CAPTURED = "already_captured"
    TRANSFER = "transfer"


class MatchCandidate(BaseModel):
    """A local learner paired with one remote record and its match score.

    Attributes:
        learner_id: Local learner identifier.
        remote_name: Name on the remote record.
        remote_upi: UPI on the remote record.
        confidence: Name match confidence in [0, 1].
        recognized_tokens: Candidate name tokens matched exactly.
        token_deltas: Best aligned mismatch count per candidate name token.
    """

    learner_id: str
    remote_name: str
    remote_upi: str | None = None
    confidence: float
    recognized_tokens: int
    token_deltas: list[int] = Field(default_factory=list)


class MatchDecision(BaseModel):
    """Recommended action for a local learner given a remote record."""

    action: MatchAction
    reason: str
    upi: str | None = None
    nhif_no: str | None = None
    reported: bool = False
    candidate: MatchCandidate | None = None


# =============================================================================
# Listing rows
# =============================================================================


class _ListingRow(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def blank_to_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class LearnerRow(_ListingRow):
    """Row of the learners-by-grade listing."""

    upi: str | None = Field(default=None, alias="Learner UPI")
    name: str | None = Field(default=None, alias="Learner Name")
    gender: str | None = Field(default=None, alias="Gender")
    dob: str | None = Field(default=None, alias="Date of Birth")
    age: str | None = Field(default=None, alias="AGE")
    birth_certificate_no: str | None = Field(default=None, alias="Birth Cert No")
    disability: str | None = Field(default=None, alias="Disability")
    medical_condition: str | None = Field(default=None, alias="Medical Condition")
    home_phone: str | None = Field(default=None, alias="Home Phone")
    nhif_no: str | None = Field(default=None, alias="NHIF No")
    postback: str | None = None


class AdmittedJoinerRow(_ListingRow):
    """Row of the admitted joiners listing, awaiting biodata capture."""

    row: int = 0
    index_no: str | None = Field(default=None, alias="Index")
    name: str | None = Field(default=None, alias="Name")
    gender: str | None = Field(default=None, alias="Gender")
    year_of_birth: str | None = Field(default=None, alias="Year of Birth")
    marks: str | None = Field(default=None, alias="Marks")
    sub_county: str | None = Field(default=None, alias="Sub-County")
    upi: str | None = Field(default=None, alias="UPI")


class SelectedJoinerRow(_ListingRow):
    """Row of the joiners selected to the institution."""

    index_no: str | None = Field(default=None, alias="Index")
    name: str | None = Field(default=None, alias="Name")
    gender: str | None = Field(default=None, alias="Gender")
    year_of_birth: str | None = Field(default=None, alias="Year of Birth")
    marks: str | None = Field(default=None, alias="Marks")
    sub_county: str | None = Field(default=None, alias="Sub-County")


class RequestedJoinerRow(_ListingRow):
    """Row of the requested or approved joiners listings."""

    no: str | None = Field(default=None, alias="No.")
    index_no: str | None = Field(default=None, alias="Index No")
    name: str | None = Field(default=None, alias="Student Name")
    gender: str | None = Field(default=None, alias="Gender")
    marks: str | None = Field(default=None, alias="Marks")
    current_school: str | None = Field(default=None, alias="Current Selected To")
    description: str | None = Field(default=None, alias="Request Description")
    parent_id: str | None = Field(default=None, alias="Parent's IDNo")
    phone: str | None = Field(default=None, alias="Mobile No")
    date_captured: str | None = Field(default=None, alias="Date Captured")
    approved_on: str | None = Field(default=None, alias="Approved On")
    approved_by: str | None = Field(default=None, alias="Approved By")
    status: str | None = Field(default=None, alias="Status")


class ContinuingLearnerRow(_ListingRow):
    """Row of the continuing learner request and pending-capture listings."""

    no: str | None = Field(default=None, alias="No.")
    adm_no: str | None = Field(default=None, alias="Adm No")
    surname: str | None = Field(default=None, alias="Surname")
    first_name: str | None = Field(default=None, alias="Firstname")
    other_name: str | None = Field(default=None, alias="Othername")
    gender: str | None = Field(default=None, alias="Gender")
    kcpe_year: str | None = Field(default=None, alias="KCPE Year")
    index_no: str | None = Field(default=None, alias="Index")
    birth_certificate_no: str | None = Field(default=None, alias="Birth Certificate")
    grade: str | None = Field(default=None, alias="Grade")
    remarks: str | None = Field(default=None, alias="Remark")
    upi: str | None = Field(default=None, alias="UPI")
    postback: str | None = None

    @property
    def name(self) -> str:
        return " ".join(p for p in (self.surname, self.first_name, self.other_name) if p)


class Institution(_ListingRow):
    """Institution detail page."""

    name: str | None = None
    code: str | None = None
    knec_code: str | None = None
    registration_number: str | None = None
    type: str | None = None
    education_level: str | None = None
    education_level_code: str | None = None
    category: str | None = None
    county: str | None = None
    sub_county: str | None = None
    postal_address: str | None = None
    mobile_number: str | None = None
    email: str | None = None
