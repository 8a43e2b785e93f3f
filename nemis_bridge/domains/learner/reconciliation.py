# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Reconciliation of local learners against remote records.

ReconciliationMatcher decides, for a local learner with no UPI yet, what an
observed remote record implies. Checks run in priority order:

1. No learner record, or no institution code or level: capture.
2. Same institution as ours: already captured; take over UPI and NHIF number.
3. Remote level below ours: capture.
4. Same level: gender and name must agree, otherwise ConflictError; when
   they do the learner is a transfer candidate.
5. Remote level above ours, or anything else: capture.

Example:
    >>> matcher = ReconciliationMatcher(institution_code="x1234", institution_level=3)
    >>> decision = matcher.decide(learner, await api.search_learner(bc))
    >>> if decision.action == MatchAction.TRANSFER:
    ...     await engine.transfer_in(learner)
"""

import logging

from nemis_bridge.domains.learner.models import (
    Gender,
    LocalLearner,
    MatchAction,
    MatchCandidate,
    MatchDecision,
)
from nemis_bridge.domains.learner.name_match import is_match, score_name
from nemis_bridge.services.lookup.models import LearnerCategory, LookupLearner
from nemis_bridge.services.portal.exceptions import ConflictError

logger = logging.getLogger(__name__)

CONFLICT_MESSAGE = "learner birth certificate is in use by another learner"


def _level(value: str | int | None) -> int | None:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


class ReconciliationMatcher:
    """Match decisions for one institution.

    Attributes:
        institution_code: Our institution code.
        institution_level: Our institution level code.
    """

    def __init__(self, institution_code: str, institution_level: str | int):
        """Initialize the matcher.

        Args:
            institution_code: Our institution code.
            institution_level: Our institution level code, for example 3.

        Raises:
            ValueError: If the code is empty or the level is not a number.
        """
        self.institution_code = (institution_code or "").strip().lower()
        level = _level(institution_level)
        if not self.institution_code:
            raise ValueError("institution code is required")
        if level is None:
            raise ValueError(f"institution level must be a numeric code, got {institution_level!r}")
        self.institution_level = level

    def decide(self, learner: LocalLearner, remote: LookupLearner) -> MatchDecision:
        """Decide what a remote record implies for a local learner.

        Args:
            learner: Local learner lacking a UPI.
            remote: Record returned by the lookup API for the learner's
                birth certificate or UPI.

        Returns:
            The recommended action.

        Raises:
            ConflictError: If a learner at a same-level institution holds the
                record and gender or name disagree.
        """
        institution = remote.institution
        remote_code = (institution.code or "").strip().lower()
        remote_level = _level(institution.level)

        if remote.category in (LearnerCategory.NOT_A_LEARNER, LearnerCategory.ALUMNUS):
            return MatchDecision(action=MatchAction.CAPTURE, reason="no current learner record")
        if not remote_code or remote_level is None:
            return MatchDecision(action=MatchAction.CAPTURE, reason="no current institution")

        if remote_code == self.institution_code:
            return MatchDecision(
                action=MatchAction.ALREADY_CAPTURED,
                reason="already captured at this institution",
                upi=remote.upi,
                nhif_no=remote.nhif_no,
                reported=bool(remote.upi),
            )

        if remote_level != self.institution_level:
            reason = (
                "held at a lower level"
                if remote_level < self.institution_level
                else "held at a higher level"
            )
            return MatchDecision(action=MatchAction.CAPTURE, reason=reason)

        score = score_name(learner.name, remote.name)
        candidate = MatchCandidate(
            learner_id=learner.id,
            remote_name=remote.name or "",
            remote_upi=remote.upi,
            confidence=score.confidence,
            recognized_tokens=score.recognized_tokens,
            token_deltas=score.token_deltas,
        )
        remote_gender = Gender.parse(remote.gender)
        if learner.gender is None or remote_gender != learner.gender or not is_match(score):
            logger.info(
                "Reconciliation conflict: learner=%s, institution=%s, confidence=%.2f",
                learner.id,
                remote_code,
                score.confidence,
            )
            raise ConflictError(
                CONFLICT_MESSAGE,
                institution_code=institution.code,
                institution_name=institution.name,
                remote_name=remote.name,
                remote_upi=remote.upi,
                details={
                    "gender_matches": remote_gender == learner.gender,
                    "confidence": score.confidence,
                },
            )

        return MatchDecision(
            action=MatchAction.TRANSFER,
            reason="enrolled at another institution of the same level",
            upi=remote.upi,
            candidate=candidate,
        )
