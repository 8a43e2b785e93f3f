# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Interfaces of the external stores the sync service talks to.

Persistence and credential storage live outside this package; callers pass
objects satisfying these protocols.
"""

from typing import Protocol

from nemis_bridge.domains.learner.models import LocalLearner, TransitionOutcome
from nemis_bridge.services.portal.session import PortalCredentials


class CredentialStore(Protocol):
    """Source of portal login credentials."""

    async def credentials_for(self, identity: str) -> PortalCredentials:
        """Return the decrypted portal credentials of an institution identity."""
        ...


class LearnerStore(Protocol):
    """Persistent store of local learner records."""

    async def learners_in_grade(self, grade: str) -> list[LocalLearner]:
        """Return the local learners of a grade."""
        ...

    async def apply_outcome(self, learner_id: str, outcome: TransitionOutcome) -> None:
        """Persist the state change, UPI or error an outcome carries."""
        ...
