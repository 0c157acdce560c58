"""Adaptive pair selection for Library Ranker."""

from __future__ import annotations

import random
from collections.abc import Sequence
from dataclasses import dataclass

from library_ranker.core.config import SelectionConfig
from library_ranker.models import ComparisonRecord

from .candidates import MIN_POOL_SIZE, Candidate

RATING_SIMILARITY_SPAN = 400.0


@dataclass(frozen=True)
class ComparisonPair:
    """Two candidates to present together for one decision."""

    item_a: Candidate
    item_b: Candidate

    @property
    def ids(self) -> tuple[str, str]:
        return self.item_a.id, self.item_b.id


@dataclass(frozen=True)
class InsufficientItems:
    """Returned instead of a pair when the pool is too small.

    This is an expected state ("add more items"), not an error.
    """

    available: int
    required: int = MIN_POOL_SIZE


def pair_key(item_a_id: str, item_b_id: str) -> frozenset[str]:
    """Order-independent key for a pairing."""
    return frozenset((item_a_id, item_b_id))


def rating_similarity(rating_a: float, rating_b: float) -> float:
    """1.0 for identical ratings, falling linearly to 0 at a 400-point gap."""
    return max(0.0, 1 - abs(rating_a - rating_b) / RATING_SIMILARITY_SPAN)


def match_affinity(first: Candidate, partner: Candidate) -> float:
    """Blend the partner's priority with how competitive the pairing is."""
    return 0.5 * partner.priority_score + 0.5 * rating_similarity(first.rating, partner.rating)


def _first_slot_pool(
    ranked: list[Candidate],
    recent_first: set[str],
    selection: SelectionConfig,
) -> list[Candidate]:
    """Top slice of the priority ranking, skipping recent lead items when possible."""
    pool_size = max(1, min(selection.first_pool_size, len(ranked) // 2))
    top = ranked[:pool_size]
    fresh = [c for c in top if c.id not in recent_first]
    return fresh or top


def select_pair(
    candidates: Sequence[Candidate],
    history: Sequence[ComparisonRecord],
    rng: random.Random,
    selection: SelectionConfig | None = None,
) -> ComparisonPair | None:
    """Choose the next pair to compare.

    The lead item is drawn at random from the highest-priority candidates,
    avoiding items that recently led a comparison. Its partner is the
    best-affinity candidate not recently paired with it. When every
    inspected partner was seen recently, the best-affinity partner is
    returned anyway so selection never stalls.

    Args:
        candidates: Scored candidate pool.
        history: Recent comparison records, most recent first.
        rng: Random source for the lead-item draw.
        selection: Selection tuning; defaults when None.

    Returns:
        The chosen pair, or None when fewer than two candidates exist.
    """
    selection = selection or SelectionConfig()
    if len(candidates) < MIN_POOL_SIZE:
        return None

    seen_pairs = {pair_key(r.item_a_id, r.item_b_id) for r in history}
    recent_first = {r.item_a_id for r in history[: selection.recent_first_window]}

    ranked = sorted(candidates, key=lambda c: c.priority_score, reverse=True)
    pool = _first_slot_pool(ranked, recent_first, selection)
    first = rng.choice(pool[: selection.first_pick_top])

    partners = sorted(
        (c for c in candidates if c.id != first.id),
        key=lambda c: match_affinity(first, c),
        reverse=True,
    )
    for partner in partners[: selection.partner_scan]:
        if pair_key(first.id, partner.id) not in seen_pairs:
            return ComparisonPair(first, partner)

    return ComparisonPair(first, partners[0])
