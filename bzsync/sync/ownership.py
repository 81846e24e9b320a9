"""Ownership resolution — decide who owns a workspace path.

Rules map slash-delimited glob patterns to an ownership strategy. ``*``
matches within a single path segment and ``**`` matches zero or more whole
segments, so ``a/**/b`` matches ``a/b`` as well as ``a/x/y/b``.

When several rules match, the most specific one wins. Specificity is the
pattern length minus ten points per ``*`` character, so longer patterns
with fewer wildcards outrank short, wildcard-heavy ones.
"""

from __future__ import annotations

import re
from collections.abc import Mapping

from bzsync.models.sync_state import OwnershipStrategy

WILDCARD_PENALTY = 10


def resolve_ownership(
    path: str,
    strategy_by_path: Mapping[str, OwnershipStrategy],
) -> OwnershipStrategy:
    """Return the ownership strategy for *path*.

    Falls back to ``MIXED`` when nothing matches, and when the best-scoring
    matches disagree on the strategy.
    """
    matched = [
        (score_pattern(pattern), strategy)
        for pattern, strategy in strategy_by_path.items()
        if matches_glob(path, pattern)
    ]
    if not matched:
        return OwnershipStrategy.MIXED

    best_score = max(score for score, _ in matched)
    winners = {strategy for score, strategy in matched if score == best_score}
    if len(winners) > 1:
        return OwnershipStrategy.MIXED
    return winners.pop()


def score_pattern(pattern: str) -> int:
    """Specificity score of a rule pattern."""
    return len(pattern) - pattern.count("*") * WILDCARD_PENALTY


def matches_glob(path: str, pattern: str) -> bool:
    """Check whether a workspace-relative *path* matches a rule *pattern*."""
    path_segments = _normalize(path).split("/")
    pattern_segments = _normalize(pattern).split("/")
    return _match_segments(path_segments, 0, pattern_segments, 0)


def _match_segments(path: list[str], pi: int, pattern: list[str], qi: int) -> bool:
    if qi == len(pattern):
        return pi == len(path)

    head = pattern[qi]

    if head == "**":
        # Either ** matches nothing here, or it consumes one segment and retries.
        if _match_segments(path, pi, pattern, qi + 1):
            return True
        if pi == len(path):
            return False
        return _match_segments(path, pi + 1, pattern, qi)

    if pi == len(path):
        return False

    if not _match_segment(path[pi], head):
        return False

    return _match_segments(path, pi + 1, pattern, qi + 1)


def _match_segment(segment: str, pattern: str) -> bool:
    if pattern == "*":
        return True

    if "*" not in pattern:
        return segment == pattern

    regex = re.escape(pattern).replace(r"\*", ".*")
    return re.fullmatch(regex, segment) is not None


def _normalize(value: str) -> str:
    return value.replace("\\", "/")
