# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Name match confidence between a local learner and remote records.

The scorer tolerates token re-ordering (surname and given names swapped) and
single-character insertions or deletions, while still penalizing spelling
divergence. It is deliberately explainable: every score comes with the
per-token mismatch counts that produced it.

Scoring:
    Both names are split into whitespace-delimited tokens. Identical token
    sequences score 1.0. Otherwise every candidate token is aligned against
    each reference token: a character matches when the reference holds it at
    the same position or one position either side. Tokens whose lengths
    differ by more than MAX_LENGTH_DELTA are wholly unmatched. The best
    (lowest) mismatch count per token decides its weight out of
    ``1 / token_count``: full weight when the token occurs verbatim, the
    weight divided by the mismatch count otherwise, and nothing when every
    character mismatched.

Example:
    >>> score = score_name("JOHN KAMAU OTIENO", "KAMAU JOHN OTIENO")
    >>> score.confidence, is_match(score)
    (1.0, True)
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

from nemis_bridge.domains.learner.models import MatchCandidate

MATCH_THRESHOLD = 0.9
MIN_RECOGNIZED_TOKENS = 2
MAX_LENGTH_DELTA = 2


@dataclass(frozen=True)
class NameScore:
    """Confidence of one candidate name against a reference name.

    Attributes:
        confidence: Sum of token weights, in [0, 1].
        recognized_tokens: Candidate tokens found verbatim in the reference.
        token_deltas: Best mismatch count per candidate token, in order.
    """

    confidence: float
    recognized_tokens: int
    token_deltas: list[int] = field(default_factory=list)


def tokenize(name: str | None) -> list[str]:
    return (name or "").lower().replace(",", " ").split()


def mismatches(token: str, reference: str) -> int:
    """Count characters of ``token`` not found near their position in ``reference``."""
    if abs(len(token) - len(reference)) > MAX_LENGTH_DELTA:
        return len(token)
    count = 0
    for i, char in enumerate(token):
        window = reference[max(i - 1, 0) : i + 2]
        if char not in window:
            count += 1
    return count


def score_name(reference: str | None, candidate: str | None) -> NameScore:
    """Score how well ``candidate`` names the same person as ``reference``."""
    reference_tokens = tokenize(reference)
    candidate_tokens = tokenize(candidate)
    if not reference_tokens or not candidate_tokens:
        return NameScore(confidence=0.0, recognized_tokens=0)
    if reference_tokens == candidate_tokens:
        return NameScore(
            confidence=1.0,
            recognized_tokens=len(candidate_tokens),
            token_deltas=[0] * len(candidate_tokens),
        )

    weight = 1 / len(candidate_tokens)
    confidence = 0.0
    recognized = 0
    deltas: list[int] = []
    for token in candidate_tokens:
        delta = min(mismatches(token, ref) for ref in reference_tokens)
        deltas.append(delta)
        if token in reference_tokens:
            recognized += 1
            confidence += weight
        elif delta < len(token):
            # Zero mismatches without a verbatim token counts as one.
            confidence += weight / max(delta, 1)
    return NameScore(
        confidence=min(round(confidence, 6), 1.0),
        recognized_tokens=recognized,
        token_deltas=deltas,
    )


def is_match(score: NameScore) -> bool:
    """Check whether a score is strong enough to treat the names as one person."""
    return score.confidence >= MATCH_THRESHOLD and score.recognized_tokens >= MIN_RECOGNIZED_TOKENS


def rank_candidates(
    learner_id: str,
    reference: str,
    candidates: Iterable[tuple[str, str | None]],
) -> list[MatchCandidate]:
    """Score remote names against a local name, best first.

    Args:
        learner_id: Local learner identifier.
        reference: Local learner name.
        candidates: ``(remote_name, remote_upi)`` pairs.

    Returns:
        Match candidates ordered by confidence descending. Ties keep input order.
    """
    ranked = []
    for remote_name, remote_upi in candidates:
        score = score_name(reference, remote_name)
        ranked.append(
            MatchCandidate(
                learner_id=learner_id,
                remote_name=remote_name,
                remote_upi=remote_upi,
                confidence=score.confidence,
                recognized_tokens=score.recognized_tokens,
                token_deltas=score.token_deltas,
            )
        )
    ranked.sort(key=lambda c: c.confidence, reverse=True)
    return ranked
