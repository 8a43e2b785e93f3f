# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Learner lifecycle and reconciliation.

This package provides learner services:
- LearnerLifecycleEngine: Request, admit, capture and transfer one learner
- ReconciliationMatcher: Decide what a remote record implies for a learner
- LearnerListings: Typed reads of the portal's learner listings
- BulkRunner: Bounded concurrent fan-out over independent learners
- LearnerSyncService: Tagged outcomes and grade synchronization

Every transition either returns a TransitionOutcome backed by a recognized
confirmation or raises a typed PortalError.
"""

from nemis_bridge.domains.learner.bulk import BulkResult, BulkRunner, UnitResult
from nemis_bridge.domains.learner.codes import (
    NameParts,
    format_dob,
    grade_code,
    medical_condition_code,
    nationality_code,
    split_names,
)
from nemis_bridge.domains.learner.lifecycle import LearnerLifecycleEngine
from nemis_bridge.domains.learner.listings import LearnerListings, grade_category
from nemis_bridge.domains.learner.models import (
    AdmittedJoinerRow,
    Contact,
    ContinuingLearnerRow,
    Gender,
    Institution,
    LearnerRow,
    LocalLearner,
    MatchAction,
    MatchCandidate,
    MatchDecision,
    OutcomeStatus,
    RequestedJoinerRow,
    SelectedJoinerRow,
    TransactionState,
    TransferDirection,
    TransitionOutcome,
)
from nemis_bridge.domains.learner.name_match import (
    MATCH_THRESHOLD,
    NameScore,
    is_match,
    rank_candidates,
    score_name,
)
from nemis_bridge.domains.learner.protocols import CredentialStore, LearnerStore
from nemis_bridge.domains.learner.reconciliation import ReconciliationMatcher
from nemis_bridge.domains.learner.service import (
    LearnerSyncService,
    SyncOperation,
    SyncReport,
)

__all__ = [
    # Engine
    "LearnerLifecycleEngine",
    "LearnerListings",
    "grade_category",
    # Reconciliation
    "ReconciliationMatcher",
    "NameScore",
    "MATCH_THRESHOLD",
    "score_name",
    "is_match",
    "rank_candidates",
    # Bulk and sync
    "BulkRunner",
    "BulkResult",
    "UnitResult",
    "LearnerSyncService",
    "SyncOperation",
    "SyncReport",
    "CredentialStore",
    "LearnerStore",
    # Models
    "LocalLearner",
    "Contact",
    "Gender",
    "TransactionState",
    "TransferDirection",
    "OutcomeStatus",
    "TransitionOutcome",
    "MatchAction",
    "MatchCandidate",
    "MatchDecision",
    "LearnerRow",
    "AdmittedJoinerRow",
    "SelectedJoinerRow",
    "RequestedJoinerRow",
    "ContinuingLearnerRow",
    "Institution",
    # Codes
    "NameParts",
    "grade_code",
    "nationality_code",
    "medical_condition_code",
    "split_names",
    "format_dob",
]
