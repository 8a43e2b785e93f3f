# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Learner synchronization service.

LearnerSyncService is the single entry point callers such as a scheduled job
or an HTTP handler use. It turns lifecycle transitions into tagged
TransitionOutcome values, and synchronizes a whole grade of continuing
learners:

1. Learners already on the portal's grade listing (same birth certificate)
   are marked captured with the listed UPI.
2. The rest are looked up through the lookup API and reconciled.
3. Capturable learners are captured; transfer candidates are transferred in
   when transfers are enabled; conflicts are reported.

Joiner requests and admissions are first re-verified against the lookup API,
and captured learners can be registered with NHIF per grade.

Example:
    >>> service = LearnerSyncService(settings, credentials, matcher, lookup)
    >>> report = await service.sync_continuing("grade 7", learners)
    >>> report.outcomes["42"].status
    <OutcomeStatus.SUCCEEDED: 'succeeded'>
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from nemis_bridge.core.config.settings import Settings
from nemis_bridge.domains.geo import GeoCodeResolver
from nemis_bridge.domains.learner.bulk import BulkResult, BulkRunner, SessionFactory
from nemis_bridge.domains.learner.lifecycle import LearnerLifecycleEngine
from nemis_bridge.domains.learner.listings import LearnerListings
from nemis_bridge.domains.learner.models import (
    LocalLearner,
    MatchAction,
    MatchDecision,
    TransactionState,
    TransitionOutcome,
)
from nemis_bridge.domains.learner.protocols import CredentialStore, LearnerStore
from nemis_bridge.domains.learner.reconciliation import ReconciliationMatcher
from nemis_bridge.services.lookup.client import LookupApiClient
from nemis_bridge.services.lookup.exceptions import LookupApiError, LookupNotFoundError
from nemis_bridge.services.portal.exceptions import PortalError, ProtocolError
from nemis_bridge.services.portal.session import PortalCredentials, SessionClient

logger = logging.getLogger(__name__)


class SyncOperation(str, Enum):
    """Single-learner operations exposed to callers."""

    REQUEST = "request"
    ADMIT = "admit"
    CAPTURE = "capture"
    TRANSFER_IN = "transfer_in"
    REQUEST_CONTINUING = "request_continuing"
    CAPTURE_CONTINUING = "capture_continuing"
    ADD_CONTINUING_WITH_BC = "add_continuing_with_bc"


# Joiner operations re-verified against the lookup API before submitting.
_JOINER_OPERATIONS = frozenset({SyncOperation.REQUEST, SyncOperation.ADMIT})


@dataclass
class SyncReport:
    """Result of synchronizing one grade.

    Attributes:
        grade: Grade synchronized.
        outcomes: Outcome per local learner id.
        decisions: Reconciliation decision per looked-up learner id.
        transfer_candidates: Learners held elsewhere that were not transferred.
    """

    grade: str
    outcomes: dict[str, TransitionOutcome] = field(default_factory=dict)
    decisions: dict[str, MatchDecision] = field(default_factory=dict)
    transfer_candidates: list[str] = field(default_factory=list)

    @property
    def failed(self) -> dict[str, TransitionOutcome]:
        return {k: v for k, v in self.outcomes.items() if not v.ok}


class LearnerSyncService:
    """Single-learner operations and grade synchronization.

    Attributes:
        settings: Application settings.
        credentials: Institution portal login.
        matcher: Reconciliation matcher for the institution.
        lookup: Lookup API client.
    """

    def __init__(
        self,
        settings: Settings,
        credentials: PortalCredentials,
        matcher: ReconciliationMatcher,
        lookup: LookupApiClient,
        session_factory: SessionFactory | None = None,
        resolver: GeoCodeResolver | None = None,
    ):
        self.settings = settings
        self.credentials = credentials
        self.matcher = matcher
        self.lookup = lookup
        self.resolver = resolver or GeoCodeResolver()
        self._session_factory = session_factory or (lambda: SessionClient(settings.portal))
        self._runner = BulkRunner(
            settings.portal,
            credentials,
            concurrency=settings.sync.concurrency,
            session_factory=self._session_factory,
            resolver=self.resolver,
        )

    @classmethod
    async def for_institution(
        cls,
        settings: Settings,
        credential_store: CredentialStore,
        identity: str,
        lookup: LookupApiClient,
        institution_level: str | int | None = None,
        session_factory: SessionFactory | None = None,
    ) -> "LearnerSyncService":
        """Build a service for one institution, reading its code from the portal.

        Args:
            settings: Application settings.
            credential_store: Source of the institution's portal login.
            identity: Institution identity known to the credential store.
            lookup: Lookup API client.
            institution_level: Institution level code. Defaults to the level
                shown on the institution page.
            session_factory: Builds fresh sessions.

        Raises:
            ProtocolError: If the institution page shows no code or no level.
        """
        credentials = await credential_store.credentials_for(identity)
        factory = session_factory or (lambda: SessionClient(settings.portal))
        async with factory() as session:
            await session.authenticate(credentials)
            institution = await LearnerListings(session).institution()
        level = institution_level if institution_level is not None else institution.education_level_code
        try:
            matcher = ReconciliationMatcher(institution.code or "", level or "")
        except ValueError as e:
            raise ProtocolError(
                "Institution page carries no usable institution code or level",
                details={"code": institution.code, "level": level},
            ) from e
        logger.info(
            "Sync service ready: institution=%s, level=%d",
            matcher.institution_code,
            matcher.institution_level,
        )
        return cls(settings, credentials, matcher, lookup, session_factory=factory)

    # =========================================================================
    # Single learner
    # =========================================================================

    async def run(
        self,
        operation: SyncOperation,
        learner: LocalLearner,
        session: SessionClient | None = None,
    ) -> TransitionOutcome:
        """Run one operation for one learner and return its tagged outcome.

        Typed portal errors become failed outcomes; nothing else is converted.

        Args:
            operation: Operation to run.
            learner: Local learner.
            session: Authenticated session to reuse. When omitted a fresh
                session is opened and logged in.
        """
        if session is not None:
            return await self._run_on(session, operation, learner)
        try:
            async with self._session_factory() as fresh:
                await fresh.authenticate(self.credentials)
                return await self._run_on(fresh, operation, learner)
        except PortalError as e:
            logger.warning("%s failed for learner %s: %s", operation.value, learner.id, e)
            return TransitionOutcome.failed(learner.state, e)

    async def _run_on(
        self,
        session: SessionClient,
        operation: SyncOperation,
        learner: LocalLearner,
    ) -> TransitionOutcome:
        engine = LearnerLifecycleEngine(session, self.resolver)
        try:
            return await self._apply(engine, operation, learner)
        except PortalError as e:
            logger.warning("%s failed for learner %s: %s", operation.value, learner.id, e)
            return TransitionOutcome.failed(learner.state, e)

    async def _apply(
        self,
        engine: LearnerLifecycleEngine,
        operation: SyncOperation,
        learner: LocalLearner,
    ) -> TransitionOutcome:
        if operation in _JOINER_OPERATIONS and self.settings.sync.verify_joiners:
            outcome = await self.verify_joiner(learner)
            if outcome is not None:
                return outcome
        return await getattr(engine, operation.value)(learner)

    async def verify_joiner(self, learner: LocalLearner) -> TransitionOutcome | None:
        """Check with the lookup API whether a joiner already reported here.

        Used before a request or admission so a joiner whose earlier
        submission went through, for example before a timeout, is not
        submitted twice.

        Returns:
            ALREADY_SATISFIED in state ADMITTED, or CAPTURED when a UPI was
            issued, if the joiner reported to this institution. None when the
            portal should decide, including when the lookup API fails.
        """
        if not learner.index_no or learner.state.reached(TransactionState.ADMITTED):
            return None
        try:
            status = await self.lookup.joiner_status(learner.index_no, self.matcher.institution_code)
        except LookupApiError as e:
            logger.warning("Joiner verification skipped for learner %s: %s", learner.id, e)
            return None
        if not status.reported_at(self.matcher.institution_code):
            return None
        state = TransactionState.CAPTURED if status.upi else TransactionState.ADMITTED
        logger.info(
            "Joiner already reported: learner=%s, index=%s, state=%s",
            learner.id,
            learner.index_no,
            state.value,
        )
        return TransitionOutcome.already_satisfied(state, status.upi)

    async def run_many(
        self,
        operation: SyncOperation,
        learners: Sequence[LocalLearner],
    ) -> BulkResult:
        """Run one operation over many learners, one session each."""
        return await self._runner.run(
            learners,
            lambda engine, learner: self._apply(engine, operation, learner),
            operation.value,
        )

    async def submit_to_nhif(self, grade: str) -> dict[str, TransitionOutcome]:
        """Register a grade's captured learners without an NHIF number.

        Returns:
            Outcome per learner UPI.

        Raises:
            PortalError: If logging in or reading the grade listing failed.
        """
        async with self._session_factory() as session:
            await session.authenticate(self.credentials)
            return await LearnerLifecycleEngine(session, self.resolver).submit_to_nhif(grade)

    # =========================================================================
    # Grade synchronization
    # =========================================================================

    async def sync_continuing(
        self,
        grade: str,
        learners: Sequence[LocalLearner],
        transfer_in: bool | None = None,
    ) -> SyncReport:
        """Synchronize the continuing learners of one grade.

        Args:
            grade: Grade name.
            learners: Local learners of the grade.
            transfer_in: Transfer in learners held by another institution.
                Defaults to the configured behaviour.

        Returns:
            Per-learner outcomes and reconciliation decisions.
            When the grade listing cannot be read every learner gets a failed
            outcome carrying that error.
        """
        if transfer_in is None:
            transfer_in = self.settings.sync.transfer_in
        report = SyncReport(grade=grade)

        try:
            async with self._session_factory() as session:
                await session.authenticate(self.credentials)
                listed = await LearnerListings(session).learners(grade)
        except PortalError as e:
            logger.error("Grade %s listing failed: %s", grade, e)
            for learner in learners:
                report.outcomes[learner.id] = TransitionOutcome.failed(learner.state, e)
            return report
        listed_upis = {
            row.birth_certificate_no.strip().lower(): row.upi
            for row in listed
            if row.birth_certificate_no and row.upi
        }

        to_capture: list[LocalLearner] = []
        to_transfer: list[LocalLearner] = []
        for learner in learners:
            if learner.upi or learner.state.reached(TransactionState.CAPTURED):
                report.outcomes[learner.id] = TransitionOutcome.already_satisfied(
                    learner.state, learner.upi
                )
                continue
            listed_upi = listed_upis.get((learner.birth_certificate_no or "").strip().lower())
            if listed_upi:
                report.outcomes[learner.id] = TransitionOutcome.already_satisfied(
                    TransactionState.CAPTURED, listed_upi
                )
                continue

            try:
                decision = await self._reconcile(learner)
            except PortalError as e:
                report.outcomes[learner.id] = TransitionOutcome.failed(learner.state, e)
                continue
            report.decisions[learner.id] = decision

            if decision.action == MatchAction.ALREADY_CAPTURED:
                state = TransactionState.REPORTED if decision.reported else TransactionState.CAPTURED
                report.outcomes[learner.id] = TransitionOutcome.already_satisfied(state, decision.upi)
            elif decision.action == MatchAction.TRANSFER:
                if transfer_in:
                    to_transfer.append(learner.model_copy(update={"upi": decision.upi}))
                else:
                    report.transfer_candidates.append(learner.id)
            else:
                to_capture.append(
                    learner.model_copy(update={"state": TransactionState.PENDING_CAPTURE})
                )

        logger.info(
            "Grade %s reconciled: listed=%d, capture=%d, transfer=%d, candidates=%d",
            grade,
            len(listed),
            len(to_capture),
            len(to_transfer),
            len(report.transfer_candidates),
        )
        for batch, operation in (
            (to_capture, SyncOperation.ADD_CONTINUING_WITH_BC),
            (to_transfer, SyncOperation.TRANSFER_IN),
        ):
            if not batch:
                continue
            result = await self.run_many(operation, batch)
            for learner, unit in zip(batch, result.results):
                report.outcomes[learner.id] = unit.outcome or TransitionOutcome.crashed(
                    learner.state, unit.error
                )
        return report

    async def sync_store(self, store: LearnerStore, grade: str) -> SyncReport:
        """Synchronize a grade read from a learner store and persist every outcome."""
        learners = await store.learners_in_grade(grade)
        report = await self.sync_continuing(grade, learners)
        for learner_id, outcome in report.outcomes.items():
            await store.apply_outcome(learner_id, outcome)
        return report

    async def _reconcile(self, learner: LocalLearner) -> MatchDecision:
        key = learner.birth_certificate_no or learner.upi
        if not key:
            return MatchDecision(action=MatchAction.CAPTURE, reason="no identifier to look up")
        try:
            remote = await self.lookup.search_learner(key)
        except LookupNotFoundError:
            return MatchDecision(action=MatchAction.CAPTURE, reason="not known to the lookup API")
        return self.matcher.decide(learner, remote)
