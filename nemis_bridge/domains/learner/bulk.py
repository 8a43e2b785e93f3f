# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Concurrent fan-out of lifecycle transitions over independent learners.

A portal conversation is strictly sequential, so parallelism comes from
running each learner on its own SessionClient with its own login. The number
of concurrent conversations is bounded by a semaphore, and every learner's
result is settled independently: one failure never aborts its siblings.

Example:
    >>> runner = BulkRunner(settings.portal, credentials, concurrency=5)
    >>> result = await runner.run(learners, lambda engine, l: engine.capture(l), "capture")
    >>> result.failed_count
    1
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone

from nemis_bridge.core.config.settings import PortalSettings
from nemis_bridge.domains.geo import GeoCodeResolver
from nemis_bridge.domains.learner.lifecycle import LearnerLifecycleEngine
from nemis_bridge.domains.learner.models import LocalLearner, TransitionOutcome
from nemis_bridge.services.portal.exceptions import PortalError
from nemis_bridge.services.portal.session import PortalCredentials, SessionClient
from nemis_bridge.utils.logging import bind_context, clear_context

logger = logging.getLogger(__name__)

Operation = Callable[[LearnerLifecycleEngine, LocalLearner], Awaitable[TransitionOutcome]]
SessionFactory = Callable[[], SessionClient]


@dataclass
class UnitResult:
    """Settled result of one learner.

    Attributes:
        learner_id: Local learner identifier.
        outcome: Transition outcome; a failed outcome for typed portal errors.
        error: The exception the unit raised, if any.
    """

    learner_id: str
    outcome: TransitionOutcome | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.outcome is not None and self.outcome.ok


@dataclass
class BulkResult:
    """Per-learner results of one bulk run, in input order."""

    operation: str
    results: list[UnitResult] = field(default_factory=list)
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def succeeded_count(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed_count(self) -> int:
        return len(self.results) - self.succeeded_count

    @property
    def duration_seconds(self) -> float | None:
        """Get run duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None


class BulkRunner:
    """Run one lifecycle operation over many learners concurrently.

    Attributes:
        settings: Portal settings for every session created.
        credentials: Login shared read-only by all sessions.
        concurrency: Maximum number of concurrent sessions.
    """

    def __init__(
        self,
        settings: PortalSettings,
        credentials: PortalCredentials,
        concurrency: int = 5,
        session_factory: SessionFactory | None = None,
        resolver: GeoCodeResolver | None = None,
    ):
        """Initialize the runner.

        Args:
            settings: Portal settings for every session created.
            credentials: Login shared read-only by all sessions.
            concurrency: Maximum number of concurrent sessions.
            session_factory: Builds a fresh, unauthenticated session per unit.
                Defaults to SessionClient over ``settings``.
            resolver: Region code resolver shared by all engines.
        """
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.settings = settings
        self.credentials = credentials
        self.concurrency = concurrency
        self._session_factory = session_factory or (lambda: SessionClient(settings))
        self._resolver = resolver or GeoCodeResolver()

    async def run(
        self,
        learners: Sequence[LocalLearner],
        operation: Operation,
        name: str = "operation",
    ) -> BulkResult:
        """Run ``operation`` for every learner, settling all of them.

        Args:
            learners: Learners to process.
            operation: Coroutine taking an engine and a learner.
            name: Operation name for logs and the result.

        Returns:
            One UnitResult per learner, in input order.
        """
        result = BulkResult(operation=name, started_at=datetime.now(timezone.utc))
        semaphore = asyncio.Semaphore(self.concurrency)

        async def unit(learner: LocalLearner) -> TransitionOutcome:
            async with semaphore:
                bind_context(learner=learner.id, operation=name)
                try:
                    async with self._session_factory() as session:
                        await session.authenticate(self.credentials)
                        engine = LearnerLifecycleEngine(session, self._resolver)
                        return await operation(engine, learner)
                finally:
                    clear_context()

        logger.info(
            "Starting bulk %s: learners=%d, concurrency=%d",
            name,
            len(learners),
            self.concurrency,
        )
        settled = await asyncio.gather(
            *[unit(learner) for learner in learners],
            return_exceptions=True,
        )

        for learner, value in zip(learners, settled):
            if isinstance(value, TransitionOutcome):
                result.results.append(UnitResult(learner_id=learner.id, outcome=value))
            elif isinstance(value, PortalError):
                logger.warning("Bulk %s failed for learner %s: %s", name, learner.id, value)
                result.results.append(
                    UnitResult(
                        learner_id=learner.id,
                        outcome=TransitionOutcome.failed(learner.state, value),
                        error=value,
                    )
                )
            else:
                logger.error(
                    "Bulk %s crashed for learner %s: %s",
                    name,
                    learner.id,
                    value,
                    exc_info=value,
                )
                result.results.append(UnitResult(learner_id=learner.id, error=value))

        result.completed_at = datetime.now(timezone.utc)
        logger.info(
            "Finished bulk %s: succeeded=%d, failed=%d",
            name,
            result.succeeded_count,
            result.failed_count,
        )
        return result
