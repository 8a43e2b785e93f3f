# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Learner lifecycle engine.

LearnerLifecycleEngine drives one learner through one transition at a time,
as a bounded sequence of SessionClient calls. Each submission replays the
state of the page it follows.

New joiners:
    UNSUBMITTED --request--> REQUESTED --admit--> ADMITTED --capture--> CAPTURED

Continuing learners:
    request_continuing --> PENDING_CAPTURE --capture_continuing--> CAPTURED
    add_continuing_with_bc --> CAPTURED

Captured learners without an NHIF number are then registered with NHIF
through submit_to_nhif.

Every transition is idempotent: one already satisfied by the learner's state
returns ALREADY_SATISFIED without a submission. A transition succeeds only on
a positively recognized confirmation; anything else raises a typed
PortalError. Nothing is retried except the single "ignore this error"
resubmission of the biodata form and the single reset of a joiner whose
biodata was captured before.

Example:
    >>> engine = LearnerLifecycleEngine(session)
    >>> outcome = await engine.admit(learner)
    >>> outcome.status
    <OutcomeStatus.SUCCEEDED: 'succeeded'>
"""

import logging

from nemis_bridge.domains.geo import GeoCodeResolver
from nemis_bridge.domains.learner.codes import (
    format_dob,
    grade_code,
    medical_condition_code,
    nationality_code,
    split_names,
)
from nemis_bridge.domains.learner.listings import LearnerListings, grade_category
from nemis_bridge.domains.learner.models import (
    AdmittedJoinerRow,
    ContinuingLearnerRow,
    LearnerRow,
    LocalLearner,
    TransactionState,
    TransferDirection,
    TransitionOutcome,
)
from nemis_bridge.services.lookup.models import AdmissionResults
from nemis_bridge.services.portal import selectors as sel
from nemis_bridge.services.portal.exceptions import (
    CapacityExhaustedError,
    CaptureFailedError,
    PortalError,
    PrerequisiteError,
    ProtocolError,
    RemoteMessageError,
    RequestFailedError,
    UnrecognizedResponseError,
)
from nemis_bridge.services.portal.extractor import RecordExtractor
from nemis_bridge.services.portal.selectors import (
    BiodataForm,
    ContinuingForm,
    Controls,
    Elements,
    IndexForm,
    Markers,
    Paths,
    TransferForm,
)
from nemis_bridge.services.portal.session import ListingCategory, Page, SessionClient

logger = logging.getLogger(__name__)


class LearnerLifecycleEngine:
    """Orchestrates lifecycle transitions for single learners.

    Attributes:
        session: Authenticated session the transitions run on.
        resolver: Region code resolver for the biodata form.
        extractor: Record extractor for confirmation pages.
        listings: Listing reads used to locate a learner's row.
    """

    def __init__(
        self,
        session: SessionClient,
        resolver: GeoCodeResolver | None = None,
        extractor: RecordExtractor | None = None,
        listings: LearnerListings | None = None,
    ):
        self.session = session
        self.resolver = resolver or GeoCodeResolver()
        self.extractor = extractor or session.extractor
        self.listings = listings or LearnerListings(session, self.extractor)

    # =========================================================================
    # New joiners
    # =========================================================================

    async def request(
        self,
        learner: LocalLearner,
        results: AdmissionResults | None = None,
    ) -> TransitionOutcome:
        """Request placement of a joiner selected to another institution.

        Args:
            learner: Local learner with an index number.
            results: Placement results from the lookup API, if fetched.

        Returns:
            SUCCEEDED in state REQUESTED, or ALREADY_SATISFIED.

        Raises:
            PrerequisiteError: If requests are disabled or the learner is a
                continuing learner.
            CapacityExhaustedError: If the institution has no vacancies left.
            RequestFailedError: If the portal rejected the request.
            UnrecognizedResponseError: If no confirmation was recognized.
        """
        if learner.state == TransactionState.PENDING_CAPTURE:
            raise PrerequisiteError(
                "Continuing learners are requested through the continuing learner form",
                details={"learner": learner.id},
            )
        if learner.state.reached(TransactionState.REQUESTED):
            return TransitionOutcome.already_satisfied(learner.state, learner.upi)
        _require(learner.index_no, "index number", learner)

        page = await self.session.navigate(Paths.STUDENT_INDEX)
        can_admit, can_request = self._admission_flags(page)
        if not can_request:
            raise PrerequisiteError("Requesting learners is currently disabled on the portal")

        page = await self.session.submit(
            Paths.STUDENT_INDEX,
            self._index_fields(learner, results, IndexForm.REQUEST, can_admit, can_request),
            state=page.state,
        )
        redirected = Markers.REQUEST_REDIRECT.search(page.text) or page.landed_on(
            Paths.STUDENT_INDEX_REQUEST
        )
        if not redirected:
            view_state = page.state.decoded_view_state() if page.state else ""
            if Markers.CAPACITY_EXHAUSTED in view_state:
                raise CapacityExhaustedError(
                    "School vacancies are exhausted",
                    details={"learner": learner.id},
                )
            raise self._not_confirmed(
                UnrecognizedResponseError, "Placement request was not accepted", page
            )

        page = await self.session.navigate(Paths.STUDENT_INDEX_REQUEST)
        parent = learner.parent
        page = await self.session.submit(
            Paths.STUDENT_INDEX_REQUEST,
            {
                Controls.ADMIT_BUTTON: IndexForm.APPLY,
                sel.SCRIPT_MANAGER: sel.update_panel_trigger("BtnAdmit"),
                IndexForm.FILE_NO: learner.adm_no,
                IndexForm.GENDER: _gender(learner),
                IndexForm.INDEX: learner.index_no,
                IndexForm.MARKS: _marks(learner, results),
                IndexForm.NAME: _official_name(learner, results),
                IndexForm.PARENT_ID: parent.id,
                IndexForm.PARENT_PHONE: parent.tel,
                IndexForm.REQUESTED_BY: learner.requested_by
                or f"requested by parent with id number {parent.id or ''}".strip(),
            },
            state=page.state,
        )

        message = self._error_message(page)
        if message == Markers.REQUEST_SAVED:
            logger.info("Placement requested: learner=%s, index=%s", learner.id, learner.index_no)
            return TransitionOutcome.succeeded(
                TransactionState.REQUESTED, message="Placement request saved", remote_message=message
            )
        raise self._not_confirmed(RequestFailedError, "Placement request failed", page)

    async def admit(
        self,
        learner: LocalLearner,
        results: AdmissionResults | None = None,
    ) -> TransitionOutcome:
        """Admit a joiner, in two phases.

        The first submission on the student index page leads to a check page;
        only the check page's confirmation admits the learner.

        Returns:
            SUCCEEDED in state ADMITTED, or ALREADY_SATISFIED.

        Raises:
            PrerequisiteError: If admissions are disabled, the learner was
                never requested, or no birth certificate number is known.
            UnrecognizedResponseError: If no confirmation was recognized.
        """
        if learner.state.reached(TransactionState.ADMITTED):
            return TransitionOutcome.already_satisfied(learner.state, learner.upi)
        _require(learner.index_no, "index number", learner)

        page = await self.session.navigate(Paths.STUDENT_INDEX)
        can_admit, can_request = self._admission_flags(page)
        if not can_admit:
            raise PrerequisiteError("Admitting learners is currently disabled on the portal")

        page = await self.session.submit(
            Paths.STUDENT_INDEX,
            self._index_fields(learner, results, IndexForm.ADMIT, can_admit, can_request),
            state=page.state,
            async_post=False,
        )
        if Markers.REQUEST_REDIRECT.search(page.text) or page.landed_on(Paths.STUDENT_INDEX_REQUEST):
            raise PrerequisiteError(
                "Admission failed, please request the learner first",
                details={"learner": learner.id, "index_no": learner.index_no},
            )
        if not page.landed_on(Paths.STUDENT_INDEX_CHECK):
            raise self._not_confirmed(
                UnrecognizedResponseError, "Admission did not reach the confirmation page", page
            )

        birth_certificate = _require(learner.birth_certificate_no, "birth certificate number", learner)
        page = await self.session.submit(
            Paths.STUDENT_INDEX_CHECK,
            {
                Controls.ADMIT_BUTTON: IndexForm.ADMIT,
                IndexForm.BIRTH_CERTIFICATE: birth_certificate,
                IndexForm.GENDER: _gender(learner),
                IndexForm.INDEX: learner.index_no,
                IndexForm.MARKS: _marks(learner, results),
                IndexForm.NAME: _official_name(learner, results),
                IndexForm.UPI: learner.adm_no,
            },
            state=page.state,
            async_post=False,
        )
        message = self._error_message(page)
        if message and Markers.ADMITTED.lower() in message.lower():
            logger.info("Learner admitted: learner=%s, index=%s", learner.id, learner.index_no)
            return TransitionOutcome.succeeded(
                TransactionState.ADMITTED, message="Learner admitted", remote_message=message
            )
        raise self._not_confirmed(UnrecognizedResponseError, "Admission was not confirmed", page)

    async def capture(self, learner: LocalLearner) -> TransitionOutcome:
        """Capture biodata and obtain a UPI.

        Admitted joiners are captured from the admitted joiners listing;
        learners pending capture through the grade listing.

        Raises:
            PrerequisiteError: If the learner was never admitted. No
                submission is made.
        """
        if learner.state in (TransactionState.UNSUBMITTED, TransactionState.REQUESTED):
            raise PrerequisiteError(
                "Biodata capture needs an admitted learner",
                details={"learner": learner.id, "state": learner.state.value},
            )
        if learner.state.reached(TransactionState.CAPTURED):
            return TransitionOutcome.already_satisfied(learner.state, learner.upi)
        if learner.state == TransactionState.ADMITTED:
            return await self.capture_admitted_joiner(learner)
        return await self.add_continuing_with_bc(learner)

    async def capture_admitted_joiner(
        self,
        learner: LocalLearner,
        with_birth_certificate: bool = True,
    ) -> TransitionOutcome:
        """Open an admitted joiner's biodata form from the listing and capture it.

        When the portal reports the learner's biodata was captured before,
        the row is reset and the capture action fired exactly once more.
        """
        if learner.state.reached(TransactionState.CAPTURED):
            return TransitionOutcome.already_satisfied(learner.state, learner.upi)
        row = await self._admitted_row(learner)
        action = sel.ROW_ACTION_CAPTURE if with_birth_certificate else sel.ROW_ACTION_CAPTURE_WITHOUT_BC

        page = await self._row_action(action, row)
        if not page.landed_on(Paths.BIODATA):
            message = self._error_message(page)
            if not message or not message.lower().startswith(Markers.CAPTURED_TWICE.lower()):
                raise self._not_confirmed(CaptureFailedError, "Could not open the biodata form", page)
            logger.info("Resetting earlier biodata capture: learner=%s", learner.id)
            await self._row_action(sel.ROW_ACTION_RESET, row)
            page = await self._row_action(action, row)
            if not page.landed_on(Paths.BIODATA):
                raise self._not_confirmed(
                    CaptureFailedError, "Could not open the biodata form after a reset", page
                )
        return await self._capture_biodata(learner)

    async def undo_admission(self, learner: LocalLearner) -> TransitionOutcome:
        """Undo a joiner's admission from the admitted joiners listing.

        Confirmed by the learner no longer appearing on the listing.
        """
        row = await self._admitted_row(learner)
        page = await self._row_action(sel.ROW_ACTION_UNDO, row)
        rows = await self.listings.admitted_joiners()
        if any(_same(r.index_no, learner.index_no) for r in rows):
            raise self._not_confirmed(RequestFailedError, "Admission was not undone", page)
        logger.info("Admission undone: learner=%s", learner.id)
        return TransitionOutcome.succeeded(TransactionState.UNSUBMITTED, message="Admission undone")

    # =========================================================================
    # Transfers
    # =========================================================================

    async def transfer_in(self, learner: LocalLearner) -> TransitionOutcome:
        """Request the transfer of a learner held by another institution.

        Success means the request was saved and awaits release by the holding
        institution; completion is only observable by querying again later.

        Raises:
            PrerequisiteError: If neither UPI nor birth certificate is known.
            RequestFailedError: If the portal rejected the request.
            UnrecognizedResponseError: If no confirmation was recognized.
        """
        if learner.transfer == TransferDirection.IN:
            return TransitionOutcome.already_satisfied(learner.state, learner.upi)
        key = _require(learner.upi or learner.birth_certificate_no, "UPI or birth certificate", learner)

        page = await self.session.navigate(Paths.TRANSFER_RECEIVE)
        page = await self.session.submit(
            Paths.TRANSFER_RECEIVE,
            {
                TransferForm.REASON: TransferForm.DEFAULT_REASON,
                TransferForm.SEARCH_BUTTON: TransferForm.CHECK,
                TransferForm.REMARK: "",
                TransferForm.SEARCH: key,
            },
            state=page.state,
            async_post=False,
        )
        page = await self.session.submit(
            Paths.TRANSFER_RECEIVE,
            {
                Controls.ADMIT_BUTTON: TransferForm.SAVE,
                TransferForm.REASON: TransferForm.DEFAULT_REASON,
                TransferForm.REMARK: "",
                TransferForm.SEARCH: key,
            },
            state=page.state,
            async_post=False,
        )
        # The confirmation is only rendered into the view state.
        if page.state is not None and Markers.TRANSFER_SAVED in page.state.decoded_view_state():
            logger.info("Transfer requested: learner=%s", learner.id)
            return TransitionOutcome.succeeded(
                learner.state,
                upi=learner.upi,
                message="Transfer request saved, awaiting release from current school",
            ).model_copy(update={"transfer": TransferDirection.IN})
        raise self._not_confirmed(RequestFailedError, "Transfer request failed", page)

    # =========================================================================
    # Continuing learners
    # =========================================================================

    async def request_continuing(self, learner: LocalLearner) -> TransitionOutcome:
        """Request admission of a continuing learner.

        Confirmed by the learner appearing on the returned listing with the
        same admission and birth certificate numbers.
        """
        if learner.state.reached(TransactionState.CAPTURED):
            return TransitionOutcome.already_satisfied(learner.state, learner.upi)
        adm_no = _require(learner.adm_no, "admission number", learner)
        birth_certificate = _require(learner.birth_certificate_no, "birth certificate number", learner)
        names = _names(learner)
        grade = _grade(learner)

        page = await self.session.navigate(Paths.CONTINUING_REQUESTS)
        page = await self.session.submit(
            Paths.CONTINUING_REQUESTS,
            {Controls.ADD_STUDENT: ContinuingForm.ADD},
            state=page.state,
            async_post=False,
        )
        page = await self.session.submit(
            Paths.CONTINUING_REQUESTS,
            {
                Controls.SAVE_STUDENT: ContinuingForm.SAVE,
                ContinuingForm.GENDER: _gender(learner),
                ContinuingForm.GRADE: grade,
                Controls.SELECT_RECORDS: self.session.settings.records_per_page,
                ContinuingForm.ADM_NO: adm_no,
                ContinuingForm.BIRTH_CERTIFICATE: birth_certificate,
                ContinuingForm.FIRST_NAME: names.first_name,
                ContinuingForm.INDEX: learner.index_no,
                ContinuingForm.OTHER_NAME: names.other_names,
                ContinuingForm.REMARK: learner.remarks,
                ContinuingForm.SURNAME: names.surname,
                ContinuingForm.YEAR: learner.kcpe_year,
            },
            state=page.state,
            async_post=False,
        )
        rows = [
            ContinuingLearnerRow.model_validate(row)
            for row in self.extractor.extract_table(page.text, Elements.LEARNER_GRID)
        ]
        if any(
            _same(row.adm_no, adm_no) and _same(row.birth_certificate_no, birth_certificate)
            for row in rows
        ):
            logger.info("Continuing learner requested: learner=%s", learner.id)
            return TransitionOutcome.succeeded(
                TransactionState.PENDING_CAPTURE, message="Continuing learner requested"
            )
        raise self._not_confirmed(RequestFailedError, "Continuing learner request was not saved", page)

    async def capture_continuing(self, learner: LocalLearner) -> TransitionOutcome:
        """Capture biodata of an approved continuing learner from the pending listing."""
        if learner.state.reached(TransactionState.CAPTURED):
            return TransitionOutcome.already_satisfied(learner.state, learner.upi)
        rows = await self.listings.continuing_pending()
        row = next(
            (
                r
                for r in rows
                if (
                    learner.birth_certificate_no
                    and _same(r.birth_certificate_no, learner.birth_certificate_no)
                )
                or (learner.adm_no and _same(r.adm_no, learner.adm_no))
            ),
            None,
        )
        if row is None or not row.postback:
            raise PrerequisiteError(
                "Learner is not pending biodata capture",
                details={"learner": learner.id},
            )

        page = await self.session.submit(
            Paths.CONTINUING_PENDING,
            {
                Controls.SELECT_RECORDS: self.session.settings.records_per_page,
                row.postback: sel.PENDING_ROW_CAPTURE,
            },
            async_post=False,
        )
        if not page.landed_on(Paths.BIODATA):
            raise self._not_confirmed(UnrecognizedResponseError, "Could not open the biodata form", page)
        return await self._capture_biodata(learner)

    async def add_continuing_with_bc(self, learner: LocalLearner) -> TransitionOutcome:
        """Add a learner with a birth certificate straight from the grade listing."""
        if learner.state.reached(TransactionState.CAPTURED):
            return TransitionOutcome.already_satisfied(learner.state, learner.upi)
        _require(learner.birth_certificate_no, "birth certificate number", learner)
        try:
            category = grade_category(learner.grade)
        except ValueError as e:
            raise PrerequisiteError(str(e), details={"learner": learner.id}) from e

        page = await self.session.ensure_page_size(Paths.LEARNERS, desired_category=category)
        page = await self.session.submit(
            Paths.LEARNERS,
            {
                sel.SCRIPT_MANAGER: sel.update_panel_trigger("SelectCat"),
                **sel.CATEGORY_FILTER_DEFAULTS,
                Controls.SELECT_CATEGORY: category.value,
                Controls.SELECT_RECORDS: self.session.settings.records_per_page,
                Controls.ADD_STUDENT: ContinuingForm.ADD_WITH_BC,
            },
            state=page.state,
            event_target=Controls.SELECT_RECORDS,
        )
        if not Markers.BIODATA_REDIRECT.search(page.text):
            raise self._not_confirmed(
                UnrecognizedResponseError, "Listing did not open the biodata form", page
            )
        return await self._capture_biodata(learner)

    # =========================================================================
    # Biodata
    # =========================================================================

    async def _capture_biodata(self, learner: LocalLearner) -> TransitionOutcome:
        """Submit the biodata form: county first, then the full form."""
        dob = _require(learner.dob, "date of birth", learner)
        names = _names(learner)
        grade = _grade(learner)
        region = self.resolver.resolve(learner.county, learner.sub_county)
        if region is None:
            raise PrerequisiteError(
                f"County not recognized: {learner.county!r}",
                details={"learner": learner.id},
            )
        nationality = nationality_code(learner.nationality)
        medical_condition = medical_condition_code(learner.medical_condition)

        page = await self.session.navigate(Paths.BIODATA)
        # Sub-county options are rendered server-side for the posted county.
        page = await self.session.submit(
            Paths.BIODATA,
            {
                BiodataForm.DOB: format_dob(dob),
                BiodataForm.NATIONALITY: nationality,
                sel.SCRIPT_MANAGER: sel.update_panel_trigger("ddlcounty"),
                BiodataForm.GRADE: grade,
                Controls.COUNTY: region.county,
                BiodataForm.MEDICAL_CONDITION: medical_condition,
                Controls.SUB_COUNTY: BiodataForm.UNSET_SUB_COUNTY,
            },
            state=page.state,
            event_target=Controls.COUNTY,
        )
        if not Markers.COUNTY_ACKNOWLEDGED.search(page.text):
            raise ProtocolError(
                "County selection was not acknowledged",
                details={"learner": learner.id, "county": region.county},
            )

        fields: dict[str, object] = {
            BiodataForm.BIRTH_CERTIFICATE: learner.birth_certificate_no,
            BiodataForm.DOB: format_dob(dob),
            BiodataForm.GENDER: _gender(learner),
            BiodataForm.FIRST_NAME: names.first_name,
            BiodataForm.NATIONALITY: nationality,
            BiodataForm.OTHER_NAMES: names.other_names,
            BiodataForm.SURNAME: names.surname,
            BiodataForm.UPI: "",
            Controls.COUNTY: region.county,
            BiodataForm.MEDICAL_CONDITION: medical_condition,
            Controls.SUB_COUNTY: region.sub_county,
            BiodataForm.MY_DOB: "",
            BiodataForm.MY_IMAGE: "",
            BiodataForm.POSTAL_ADDRESS: learner.address,
            BiodataForm.SEARCH: "",
            BiodataForm.MOBILE: "",
            BiodataForm.SPECIAL_NEEDS: (
                BiodataForm.HAS_SPECIAL_NEEDS if learner.is_special else BiodataForm.NO_SPECIAL_NEEDS
            ),
            BiodataForm.EMAIL: "",
        }
        for role, (name_field, id_field, tel_field, upi_field) in BiodataForm.CONTACTS.items():
            contact = getattr(learner, role)
            if contact.is_complete:
                fields.update(
                    {name_field: contact.name, id_field: contact.id, tel_field: contact.tel, upi_field: ""}
                )
        fields[Controls.SAVE_BIODATA] = BiodataForm.SAVE

        page = await self.session.submit(
            Paths.BIODATA, fields, state=page.state, async_post=False, multipart=True
        )
        prompt = self._ignore_prompt(page)
        if prompt:
            logger.info("Ignoring biodata warning once: learner=%s", learner.id)
            page = await self.session.submit(
                Paths.BIODATA,
                {**fields, Controls.IGNORE_OPTION: BiodataForm.IGNORE},
                state=page.state,
                async_post=False,
                multipart=True,
            )
            prompt = self._ignore_prompt(page)
            if prompt:
                raise CaptureFailedError(
                    "Portal repeated its warning after it was ignored",
                    remote_message=prompt,
                    details={"learner": learner.id},
                )
        return self._biodata_result(learner, page)

    def _biodata_result(self, learner: LocalLearner, page: Page) -> TransitionOutcome:
        alert = self.extractor.text_of(page.text, Elements.ALERT)
        if not alert:
            notice = self.extractor.text_of(page.text, Elements.INSTITUTION_MESSAGE) or ""
            if notice.startswith(Markers.NEW_UPI):
                upi = notice[len(Markers.NEW_UPI) :].strip()
                logger.info("Biodata captured: learner=%s, upi=%s", learner.id, upi)
                return TransitionOutcome.succeeded(
                    TransactionState.CAPTURED, upi=upi, message="Received a new UPI"
                )
            raise UnrecognizedResponseError(
                "Biodata capture returned no alert message",
                details={"learner": learner.id},
            )

        message = alert.replace("×", "").strip()
        if Markers.BIODATA_SAVED.lower() in message.lower():
            upi = self.extractor.value_of(page.text, Elements.UPI_INPUT) or None
            logger.info("Biodata captured: learner=%s, upi=%s", learner.id, upi)
            return TransitionOutcome.succeeded(
                TransactionState.CAPTURED, upi=upi, message="Biodata saved", remote_message=message
            )
        raise CaptureFailedError(
            "Biodata capture was rejected",
            remote_message=message,
            details={"learner": learner.id},
        )

    # =========================================================================
    # NHIF registration
    # =========================================================================

    async def submit_to_nhif(self, grade: str) -> dict[str, TransitionOutcome]:
        """Register the captured learners of a grade that have no NHIF number.

        Learners are submitted one after another on this session. A failed
        learner gets a failed outcome and the rest carry on.

        Args:
            grade: Grade name.

        Returns:
            Outcome per learner UPI. Rows without a UPI are not captured yet
            and are left out.

        Raises:
            PrerequisiteError: If the grade is not recognized.
        """
        try:
            category = grade_category(grade)
        except ValueError as e:
            raise PrerequisiteError(str(e), details={"grade": grade}) from e

        rows = await self.listings.learners(grade)
        pending = [row for row in rows if row.upi and not row.nhif_no]
        logger.info(
            "Submitting to NHIF: grade=%s, listed=%d, pending=%d", grade, len(rows), len(pending)
        )
        outcomes: dict[str, TransitionOutcome] = {}
        for row in pending:
            try:
                outcomes[row.upi] = await self.submit_row_to_nhif(row, category)
            except PortalError as e:
                logger.warning("NHIF submission failed: upi=%s, error=%s", row.upi, e)
                outcomes[row.upi] = TransitionOutcome.failed(TransactionState.CAPTURED, e)
        return outcomes

    async def submit_row_to_nhif(self, row: LearnerRow, category: ListingCategory) -> TransitionOutcome:
        """Open one listed learner's biodata form and submit it to NHIF.

        The form is posted back with the values the portal rendered, so
        nothing captured before is changed.

        Raises:
            ProtocolError: If the row has no view control.
            RequestFailedError: If NHIF answered with an error.
            UnrecognizedResponseError: If the form did not open, or no NHIF
                number was recognized.
        """
        if not row.postback:
            raise ProtocolError("Learner row has no view control", details={"upi": row.upi})

        page = await self.session.ensure_page_size(Paths.LEARNERS, desired_category=category)
        page = await self.session.submit(
            Paths.LEARNERS,
            {
                sel.SCRIPT_MANAGER: f"{sel.control('UpdatePanel1')}|{row.postback}",
                **sel.CATEGORY_FILTER_DEFAULTS,
                Controls.SELECT_CATEGORY: category.value,
                Controls.SELECT_RECORDS: self.session.settings.records_per_page,
            },
            state=page.state,
            event_target=row.postback,
        )
        if not Markers.BIODATA_REDIRECT.search(page.text):
            raise self._not_confirmed(
                UnrecognizedResponseError, "Learner view did not open the biodata form", page
            )

        page = await self.session.navigate(Paths.BIODATA)
        fields: dict[str, object] = dict(self.extractor.form_values(page.text, BiodataForm.REPLAYED))
        fields[Controls.SUBMIT_NHIF] = BiodataForm.SUBMIT_NHIF
        page = await self.session.submit(
            Paths.BIODATA, fields, state=page.state, async_post=False, multipart=True
        )
        return self._nhif_result(row, page)

    def _nhif_result(self, row: LearnerRow, page: Page) -> TransitionOutcome:
        details = {"upi": row.upi}
        message = self.extractor.text_of(page.text, Elements.NHIF_MESSAGE)
        if not message:
            raise UnrecognizedResponseError("NHIF submission returned no message", details=details)
        message = message.replace("×", "").strip()
        if message.startswith(Markers.NHIF_REMOTE_ERROR):
            raise RequestFailedError(
                "NHIF rejected the submission", remote_message=message, details=details
            )
        match = Markers.NHIF_NUMBER.search(message)
        if match is None:
            raise UnrecognizedResponseError(
                "NHIF submission returned no NHIF number", remote_message=message, details=details
            )
        logger.info("Submitted to NHIF: upi=%s, nhif_no=%s", row.upi, match.group(0))
        return TransitionOutcome.succeeded(
            TransactionState.CAPTURED,
            upi=row.upi,
            message="Submitted to NHIF",
            remote_message=message,
        ).model_copy(update={"nhif_no": match.group(0)})

    # =========================================================================
    # Helpers
    # =========================================================================

    def _admission_flags(self, page: Page) -> tuple[bool, bool]:
        can_admit = self.extractor.value_of(page.text, Elements.CAN_ADMIT)
        can_request = self.extractor.value_of(page.text, Elements.CAN_REQUEST)
        return can_admit != "0", can_request != "0"

    def _index_fields(
        self,
        learner: LocalLearner,
        results: AdmissionResults | None,
        button: str,
        can_admit: bool,
        can_request: bool,
    ) -> dict[str, object]:
        admitting = button == IndexForm.ADMIT
        school_name = learner.selected_school_name or (results.selected_school if results else None)
        return {
            Controls.ADMIT_BUTTON: button,
            sel.SCRIPT_MANAGER: sel.update_panel_trigger("BtnAdmit"),
            IndexForm.ADMIT_FLAG: 1 if admitting else 0,
            IndexForm.CAN_ADMIT: 1 if can_admit else 0,
            IndexForm.CAN_REQUEST: 1 if can_request else 0,
            IndexForm.GENDER: _gender(learner),
            IndexForm.INDEX: learner.index_no,
            IndexForm.MARKS: _marks(learner, results),
            IndexForm.NAME: _official_name(learner, results),
            IndexForm.REQUEST_FLAG: 0 if admitting else 1,
            IndexForm.SCHOOL_NAME: school_name,
            IndexForm.SCHOOL_NAME_2: school_name,
            IndexForm.SCHOOL: learner.selected_school_code,
            IndexForm.SEARCH: learner.index_no,
            IndexForm.STATUS: "",
        }

    async def _admitted_row(self, learner: LocalLearner) -> AdmittedJoinerRow:
        index_no = _require(learner.index_no, "index number", learner)
        rows = await self.listings.admitted_joiners()
        row = next((r for r in rows if _same(r.index_no, index_no)), None)
        if row is None:
            raise PrerequisiteError(
                "Learner is not on the admitted joiners listing",
                details={"learner": learner.id, "index_no": index_no},
            )
        return row

    async def _row_action(self, action: str, row: AdmittedJoinerRow) -> Page:
        return await self.session.submit(
            Paths.ADMITTED_JOINERS,
            {Controls.SELECT_RECORDS: self.session.settings.records_per_page},
            event_target=Controls.LEARNER_GRID,
            event_argument=f"{action}${row.row}",
            async_post=False,
        )

    def _error_message(self, page: Page) -> str | None:
        return self.extractor.text_of(page.text, Elements.ERROR_MESSAGE) or None

    def _ignore_prompt(self, page: Page) -> str | None:
        dialog = self.extractor.text_of(page.text, Elements.IGNORE_DIALOG)
        if dialog and Markers.IGNORE_PROMPT in dialog.lower():
            return dialog
        return None

    def _not_confirmed(
        self,
        error_class: type[RemoteMessageError],
        message: str,
        page: Page,
    ) -> RemoteMessageError:
        """Build the failure for a page without a success marker.

        Pages without any portal message are unrecognized, whatever the
        transition expected.
        """
        remote_message = self._error_message(page)
        details = {"path": page.path}
        if remote_message is None:
            return UnrecognizedResponseError(message, details=details)
        return error_class(message, remote_message=remote_message, details=details)


def _require(value, label: str, learner: LocalLearner):
    if value is None or (isinstance(value, str) and not value.strip()):
        raise PrerequisiteError(
            f"Learner has no {label}",
            details={"learner": learner.id},
        )
    return value


def _same(left: str | None, right: str | None) -> bool:
    return (left or "").strip().lower() == (right or "").strip().lower()


def _gender(learner: LocalLearner) -> str:
    return learner.gender.value if learner.gender else ""


def _marks(learner: LocalLearner, results: AdmissionResults | None) -> str | None:
    return (results.marks if results else None) or learner.marks


def _official_name(learner: LocalLearner, results: AdmissionResults | None) -> str:
    return (results.name if results else None) or learner.name


def _names(learner: LocalLearner):
    try:
        return split_names(learner.name)
    except ValueError as e:
        raise PrerequisiteError(str(e), details={"learner": learner.id}) from e


def _grade(learner: LocalLearner) -> int:
    try:
        return grade_code(learner.grade)
    except ValueError as e:
        raise PrerequisiteError(str(e), details={"learner": learner.id}) from e
