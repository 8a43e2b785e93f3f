# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for LearnerSyncService."""

from datetime import date

import pytest

from conftest import (
    FakePortal,
    category_select,
    delta,
    delta_page,
    encoded_view_state,
    grid,
    html_page,
    update_panel,
)
from nemis_bridge.core.config.settings import PortalSettings, Settings, SyncSettings
from nemis_bridge.domains.learner.models import (
    Contact,
    LocalLearner,
    OutcomeStatus,
    TransactionState,
    TransferDirection,
    TransitionOutcome,
)
from nemis_bridge.domains.learner.reconciliation import ReconciliationMatcher
from nemis_bridge.domains.learner.service import LearnerSyncService, SyncOperation
from nemis_bridge.services.lookup.exceptions import LookupApiError, LookupNotFoundError
from nemis_bridge.services.lookup.models import (
    CurrentInstitution,
    JoinerStatus,
    LearnerCategory,
    LookupLearner,
    ReportedJoiner,
)
from nemis_bridge.services.portal.exceptions import ConflictError, ErrorKind, ProtocolError
from nemis_bridge.services.portal.selectors import Markers, Paths
from nemis_bridge.services.portal.session import PortalCredentials, SessionClient

GRADE_LISTING = html_page(
    category_select("Grade 7")
    + grid(["Learner UPI", "Learner Name", "Birth Cert No"], [["UPI-LISTED", "AKINYI ROSE", "BC-LISTED"]])
)


class FakeLookup:
    """Lookup API answering from a dictionary of records."""

    def __init__(self, records: dict[str, LookupLearner]):
        self.records = records
        self.searched: list[str] = []
        self.statuses: dict[str, JoinerStatus | Exception] = {}
        self.verified: list[tuple[str, str]] = []

    async def search_learner(self, identifier: str) -> LookupLearner:
        self.searched.append(identifier)
        if identifier not in self.records:
            raise LookupNotFoundError("Learner not found", status_code=404)
        return self.records[identifier]

    async def joiner_status(self, index_no: str, institution_code: str) -> JoinerStatus:
        self.verified.append((index_no, institution_code))
        status = self.statuses.get(index_no, JoinerStatus(index_no=index_no))
        if isinstance(status, Exception):
            raise status
        return status


class FakeStore:
    """Learner store keeping applied outcomes in memory."""

    def __init__(self, learners: list[LocalLearner]):
        self.learners = learners
        self.applied: dict[str, TransitionOutcome] = {}

    async def learners_in_grade(self, grade: str) -> list[LocalLearner]:
        return self.learners

    async def apply_outcome(self, learner_id: str, outcome: TransitionOutcome) -> None:
        self.applied[learner_id] = outcome


class FakeCredentialStore:
    async def credentials_for(self, identity: str) -> PortalCredentials:
        return PortalCredentials(username=identity, password="secret")


def held_by(code: str, name: str = "kamau john otieno", gender: str = "m") -> LookupLearner:
    return LookupLearner(
        category=LearnerCategory.CURRENT,
        upi=f"upi-{code}",
        name=name,
        gender=gender,
        institution=CurrentInstitution(code=code, level="3"),
    )


def learner(id_: str, bc: str | None, **extra) -> LocalLearner:
    return LocalLearner(
        id=id_,
        name="Otieno John Kamau",
        grade="grade 7",
        gender="male",
        dob=date(2010, 3, 5),
        birth_certificate_no=bc,
        father=Contact(name="Peter Otieno", tel="0712345678", id="22334455"),
        county="Nairobi",
        sub_county="Westlands",
        **extra,
    )


@pytest.fixture
def settings(portal_settings: PortalSettings) -> Settings:
    return Settings(portal=portal_settings, sync=SyncSettings(concurrency=2, transfer_in=False))


@pytest.fixture
def lookup() -> FakeLookup:
    return FakeLookup(
        {
            "BC-OWN": held_by("x1234"),
            "BC-ELSEWHERE": held_by("y9999"),
            "BC-CONFLICT": held_by("y9999", gender="f"),
        }
    )


@pytest.fixture
def service(
    portal: FakePortal,
    settings: Settings,
    credentials: PortalCredentials,
    lookup: FakeLookup,
    portal_settings: PortalSettings,
) -> LearnerSyncService:
    portal.with_login()
    return LearnerSyncService(
        settings,
        credentials,
        ReconciliationMatcher("X1234", "3"),
        lookup,
        session_factory=lambda: SessionClient(portal_settings, transport=portal.transport()),
    )


def script_capture(portal: FakePortal) -> None:
    """Script adding a learner from the grade listing through to a new UPI."""
    portal.on("POST", Paths.LEARNERS, delta(("pageRedirect", "", "%2fLearner%2fAlearner.aspx")))
    portal.on("GET", Paths.BIODATA, html_page(view_state="VS-BIO"))
    portal.on(
        "POST",
        Paths.BIODATA,
        delta_page(update_panel("<select id='ctl00_ContentPlaceHolder1_ddlsubcounty'></select>")),
        html_page("<span id='ctl00_ContentPlaceHolder1_instmessage'>New UPI: NEW-UPI</span>"),
    )


class TestSyncContinuing:
    """Tests for LearnerSyncService.sync_continuing."""

    @pytest.mark.asyncio
    async def test_grade_sync(
        self, portal: FakePortal, service: LearnerSyncService, lookup: FakeLookup
    ) -> None:
        """Test each learner ends with exactly one outcome or transfer candidacy."""
        portal.on("GET", Paths.LEARNERS, GRADE_LISTING)
        script_capture(portal)
        learners = [
            learner("1", "bc-listed"),
            learner("2", "BC-2", upi="UPI-2"),
            learner("3", "BC-OWN"),
            learner("4", "BC-ELSEWHERE"),
            learner("5", "BC-CONFLICT"),
            learner("6", "BC-NEW"),
        ]

        report = await service.sync_continuing("grade 7", learners)

        listed = report.outcomes["1"]
        assert listed.status == OutcomeStatus.ALREADY_SATISFIED
        assert listed.state == TransactionState.CAPTURED
        assert listed.upi == "UPI-LISTED"

        assert report.outcomes["2"].upi == "UPI-2"

        own = report.outcomes["3"]
        assert own.status == OutcomeStatus.ALREADY_SATISFIED
        assert own.state == TransactionState.REPORTED
        assert own.upi == "upi-x1234"

        assert "4" not in report.outcomes
        assert report.transfer_candidates == ["4"]

        conflict = report.outcomes["5"]
        assert conflict.status == OutcomeStatus.FAILED
        assert conflict.error_kind == ErrorKind.CONFLICT

        captured = report.outcomes["6"]
        assert captured.status == OutcomeStatus.SUCCEEDED
        assert captured.upi == "NEW-UPI"

        assert report.failed.keys() == {"5"}
        assert lookup.searched == ["BC-OWN", "BC-ELSEWHERE", "BC-CONFLICT", "BC-NEW"]

    @pytest.mark.asyncio
    async def test_transfer_in_when_enabled(
        self, portal: FakePortal, service: LearnerSyncService
    ) -> None:
        portal.on("GET", Paths.LEARNERS, GRADE_LISTING)
        portal.on("GET", Paths.TRANSFER_RECEIVE, html_page()).on(
            "POST",
            Paths.TRANSFER_RECEIVE,
            html_page(),
            html_page(view_state=encoded_view_state(Markers.TRANSFER_SAVED)),
        )

        report = await service.sync_continuing(
            "grade 7", [learner("4", "BC-ELSEWHERE")], transfer_in=True
        )

        outcome = report.outcomes["4"]
        assert outcome.status == OutcomeStatus.SUCCEEDED
        assert outcome.transfer == TransferDirection.IN
        assert report.transfer_candidates == []
        search = FakePortal.form(portal.posts(Paths.TRANSFER_RECEIVE)[0])
        assert search["ctl00$ContentPlaceHolder1$txtSearch"] == "upi-y9999"

    @pytest.mark.asyncio
    async def test_sync_store_persists_outcomes(
        self, portal: FakePortal, service: LearnerSyncService
    ) -> None:
        portal.on("GET", Paths.LEARNERS, GRADE_LISTING)
        store = FakeStore([learner("1", "BC-LISTED"), learner("5", "BC-CONFLICT")])

        report = await service.sync_store(store, "grade 7")

        assert store.applied == report.outcomes
        assert store.applied["1"].upi == "UPI-LISTED"
        assert store.applied["5"].status == OutcomeStatus.FAILED


class TestRun:
    """Tests for single-learner operations."""

    @pytest.mark.asyncio
    async def test_already_satisfied(
        self, portal: FakePortal, service: LearnerSyncService
    ) -> None:
        admitted = learner("1", "BC-1", state=TransactionState.ADMITTED)

        outcome = await service.run(SyncOperation.ADMIT, admitted)

        assert outcome.status == OutcomeStatus.ALREADY_SATISFIED
        assert len(portal.posts("/")) == 1

    @pytest.mark.asyncio
    async def test_typed_errors_become_failed_outcomes(
        self, portal: FakePortal, service: LearnerSyncService
    ) -> None:
        outcome = await service.run(SyncOperation.CAPTURE, learner("1", "BC-1"))

        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.error_kind == ErrorKind.PREREQUISITE
        assert outcome.state == TransactionState.UNSUBMITTED

    @pytest.mark.asyncio
    async def test_login_failure_is_a_failed_outcome(
        self, settings: Settings, credentials: PortalCredentials, lookup: FakeLookup
    ) -> None:
        portal = FakePortal().on("GET", "/", html_page()).on(
            "POST", "/", delta(("pageRedirect", "", "%2fErrorPage.aspx"))
        )
        service = LearnerSyncService(
            settings,
            credentials,
            ReconciliationMatcher("X1234", "3"),
            lookup,
            session_factory=lambda: SessionClient(settings.portal, transport=portal.transport()),
        )

        outcome = await service.run(SyncOperation.REQUEST, learner("1", "BC-1"))

        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.error_kind == ErrorKind.AUTHENTICATION

    @pytest.mark.asyncio
    async def test_run_many(self, portal: FakePortal, service: LearnerSyncService) -> None:
        learners = [learner(str(i), f"BC-{i}", state=TransactionState.CAPTURED) for i in range(3)]

        result = await service.run_many(SyncOperation.CAPTURE, learners)

        assert result.operation == "capture"
        assert result.succeeded_count == 3


class TestSyncFailures:
    """Tests for failures during a grade synchronization."""

    @pytest.mark.asyncio
    async def test_listing_failure_fails_every_learner(
        self, portal: FakePortal, service: LearnerSyncService, lookup: FakeLookup
    ) -> None:
        """Test an unreadable grade listing still yields one outcome per learner."""
        learners = [learner("1", "BC-OWN"), learner("2", "BC-2", upi="UPI-2")]

        report = await service.sync_continuing("grade 7", learners)

        assert report.outcomes.keys() == {"1", "2"}
        for outcome in report.outcomes.values():
            assert outcome.status == OutcomeStatus.FAILED
            assert outcome.error_kind == ErrorKind.PROTOCOL
        assert report.failed.keys() == {"1", "2"}
        assert lookup.searched == []
        assert portal.posts(Paths.LEARNERS) == []

    @pytest.mark.asyncio
    async def test_crashed_unit_is_an_internal_failure(
        self,
        portal: FakePortal,
        settings: Settings,
        credentials: PortalCredentials,
        lookup: FakeLookup,
        portal_settings: PortalSettings,
    ) -> None:
        portal.with_login().on("GET", Paths.LEARNERS, GRADE_LISTING)
        opened: list[SessionClient] = []

        def session_factory() -> SessionClient:
            if opened:
                raise RuntimeError("session pool closed")
            opened.append(SessionClient(portal_settings, transport=portal.transport()))
            return opened[0]

        service = LearnerSyncService(
            settings,
            credentials,
            ReconciliationMatcher("X1234", "3"),
            lookup,
            session_factory=session_factory,
        )

        report = await service.sync_continuing("grade 7", [learner("6", "BC-NEW")])

        crashed = report.outcomes["6"]
        assert crashed.status == OutcomeStatus.FAILED
        assert crashed.error_kind == ErrorKind.INTERNAL
        assert crashed.state == TransactionState.PENDING_CAPTURE
        assert crashed.message == "RuntimeError: session pool closed"


class TestJoinerVerification:
    """Tests for checking joiners with the lookup API before submitting them."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "reported, state",
        [
            (
                ReportedJoiner(institution_code="X1234", upi="UPI-REPORTED"),
                TransactionState.CAPTURED,
            ),
            (ReportedJoiner(institution_code="x1234"), TransactionState.ADMITTED),
        ],
    )
    async def test_reported_here_is_already_satisfied(
        self,
        portal: FakePortal,
        service: LearnerSyncService,
        lookup: FakeLookup,
        reported: ReportedJoiner,
        state: TransactionState,
    ) -> None:
        lookup.statuses["12345678001"] = JoinerStatus(index_no="12345678001", reported=reported)

        outcome = await service.run(
            SyncOperation.REQUEST, learner("1", "BC-1", index_no="12345678001")
        )

        assert outcome.status == OutcomeStatus.ALREADY_SATISFIED
        assert outcome.state == state
        assert outcome.upi == reported.upi
        assert lookup.verified == [("12345678001", "x1234")]
        assert portal.gets(Paths.STUDENT_INDEX) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status",
        [
            JoinerStatus(index_no="12345678001"),
            JoinerStatus(
                index_no="12345678001",
                reported=ReportedJoiner(institution_code="Y9999", upi="UPI-ELSEWHERE"),
            ),
            LookupApiError("No response was received from the lookup API"),
        ],
    )
    async def test_otherwise_the_portal_decides(
        self,
        portal: FakePortal,
        service: LearnerSyncService,
        lookup: FakeLookup,
        status: JoinerStatus | Exception,
    ) -> None:
        """Test unreported joiners and lookup failures fall through to the portal."""
        lookup.statuses["12345678001"] = status
        portal.on(
            "GET",
            Paths.STUDENT_INDEX,
            html_page("<input id='txtCanAdmt' value='1' /><input id='txtCanReq' value='0' />"),
        )

        outcome = await service.run(
            SyncOperation.REQUEST, learner("1", "BC-1", index_no="12345678001")
        )

        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.error_kind == ErrorKind.PREREQUISITE
        assert len(portal.gets(Paths.STUDENT_INDEX)) == 1

    @pytest.mark.asyncio
    async def test_verification_can_be_disabled(
        self,
        portal: FakePortal,
        credentials: PortalCredentials,
        lookup: FakeLookup,
        portal_settings: PortalSettings,
    ) -> None:
        portal.with_login()
        lookup.statuses["12345678001"] = JoinerStatus(
            index_no="12345678001", reported=ReportedJoiner(institution_code="X1234")
        )
        service = LearnerSyncService(
            Settings(portal=portal_settings, sync=SyncSettings(verify_joiners=False)),
            credentials,
            ReconciliationMatcher("X1234", "3"),
            lookup,
            session_factory=lambda: SessionClient(portal_settings, transport=portal.transport()),
        )

        outcome = await service.run(
            SyncOperation.REQUEST, learner("1", "BC-1", index_no="12345678001")
        )

        assert outcome.error_kind == ErrorKind.PROTOCOL
        assert lookup.verified == []


class TestNhif:
    """Tests for LearnerSyncService.submit_to_nhif."""

    @pytest.mark.asyncio
    async def test_nothing_pending(self, portal: FakePortal, service: LearnerSyncService) -> None:
        portal.on(
            "GET",
            Paths.LEARNERS,
            html_page(
                category_select("Grade 7")
                + grid(["Learner UPI", "Learner Name", "NHIF No"], [["UPI-1", "AKINYI ROSE", "NH-1"]])
            ),
        )

        outcomes = await service.submit_to_nhif("grade 7")

        assert outcomes == {}
        assert portal.posts(Paths.LEARNERS) == []


class TestForInstitution:
    """Tests for building a service from the institution page."""

    @pytest.mark.asyncio
    async def test_reads_institution_code_and_level(
        self,
        portal: FakePortal,
        settings: Settings,
        lookup: FakeLookup,
        portal_settings: PortalSettings,
    ) -> None:
        portal.with_login().on(
            "GET",
            Paths.INSTITUTION,
            html_page(
                "<input id='ctl00_ContentPlaceHolder1_Institution_Code' value='X1234' />"
                "<select id='ctl00_ContentPlaceHolder1_Institution_Level_Code'>"
                "<option value='2'>Primary</option>"
                "<option value='3' selected='selected'>Secondary</option></select>"
            ),
        )

        service = await LearnerSyncService.for_institution(
            settings,
            FakeCredentialStore(),
            "12345678",
            lookup,
            session_factory=lambda: SessionClient(portal_settings, transport=portal.transport()),
        )

        assert service.credentials.username == "12345678"
        assert service.matcher.institution_code == "x1234"
        assert service.matcher.institution_level == 3
        with pytest.raises(ConflictError):
            service.matcher.decide(learner("5", "BC-CONFLICT"), held_by("y9999", gender="f"))
        login = FakePortal.form(portal.posts("/")[0])
        assert login["ctl00$ContentPlaceHolder1$Login1$UserName"] == "12345678"

    @pytest.mark.asyncio
    async def test_missing_level(
        self,
        portal: FakePortal,
        settings: Settings,
        lookup: FakeLookup,
        portal_settings: PortalSettings,
    ) -> None:
        portal.with_login().on(
            "GET",
            Paths.INSTITUTION,
            html_page("<input id='ctl00_ContentPlaceHolder1_Institution_Code' value='X1234' />"),
        )

        with pytest.raises(ProtocolError):
            await LearnerSyncService.for_institution(
                settings,
                FakeCredentialStore(),
                "12345678",
                lookup,
                session_factory=lambda: SessionClient(portal_settings, transport=portal.transport()),
            )

    @pytest.mark.asyncio
    async def test_explicit_level(
        self,
        portal: FakePortal,
        settings: Settings,
        lookup: FakeLookup,
        portal_settings: PortalSettings,
    ) -> None:
        portal.with_login().on(
            "GET",
            Paths.INSTITUTION,
            html_page("<input id='ctl00_ContentPlaceHolder1_Institution_Code' value='X1234' />"),
        )

        service = await LearnerSyncService.for_institution(
            settings,
            FakeCredentialStore(),
            "12345678",
            lookup,
            institution_level="2",
            session_factory=lambda: SessionClient(portal_settings, transport=portal.transport()),
        )

        assert service.matcher.institution_level == 2
