"""Candidate pool scoring for pair selection."""

from __future__ import annotations

import math
import random
from collections.abc import Iterable
from dataclasses import dataclass

from library_ranker.core.config import RatingConfig, SelectionConfig
from library_ranker.models import LibraryItem, SystemState

MIN_POOL_SIZE = 2
RATING_MAGNITUDE_CENTER = 1400.0
RATING_MAGNITUDE_SCALE = 200.0


@dataclass
class Candidate:
    """An item eligible for comparison, annotated with selection scores.

    Attributes:
        item: The underlying library item.
        priority_score: Jittered blend of exploration need, uncertainty and
            rating magnitude. Primary ranking signal.
        ucb_score: Upper-confidence-bound score, exposed for alternative
            selection strategies.
    """

    item: LibraryItem
    priority_score: float = 0.0
    ucb_score: float = 0.0

    @property
    def id(self) -> str:
        return self.item.id

    @property
    def rating(self) -> float:
        return self.item.rating


def exploration_need(match_count: int, horizon: int = 30) -> float:
    """Near 1 for unseen items, bottoming out at 1/horizon once matured."""
    return max(1, horizon - match_count) / horizon


def ucb_score(
    rating: float,
    match_count: int,
    total_comparisons: int,
    exploration_weight: float,
) -> float:
    """Classic UCB: rating plus an exploration bonus for rarely compared items."""
    bonus = math.sqrt(math.log(total_comparisons + 1) / (match_count + 1))
    return rating + exploration_weight * bonus


def priority_score(
    item: LibraryItem,
    selection: SelectionConfig,
    initial_rating_deviation: float,
) -> float:
    """Unjittered priority for one item."""
    exploration = exploration_need(item.match_count, selection.exploration_horizon)
    uncertainty = item.rating_deviation / initial_rating_deviation
    magnitude = (item.rating - RATING_MAGNITUDE_CENTER) / RATING_MAGNITUDE_SCALE
    return (
        selection.exploration_share * exploration
        + selection.uncertainty_share * uncertainty
        + selection.rating_share * magnitude
    )


def is_eligible(item: LibraryItem, category: str | None = None) -> bool:
    """Item has an external reference and matches the optional category."""
    if not item.media_id:
        return False
    return category is None or item.media_type == category


def build_candidate_pool(
    items: Iterable[LibraryItem],
    state: SystemState,
    rng: random.Random,
    category: str | None = None,
    selection: SelectionConfig | None = None,
    rating: RatingConfig | None = None,
) -> list[Candidate]:
    """Score eligible items for pair selection.

    Args:
        items: The user's items.
        state: System state (exploration weight, total comparisons).
        rng: Random source for the priority jitter.
        category: Optional media type filter.
        selection: Selection tuning; defaults when None.
        rating: Rating defaults (initial RD for normalization); defaults when None.

    Returns:
        Scored candidates in input order, or an empty list when fewer than
        two items are eligible.
    """
    selection = selection or SelectionConfig()
    rating = rating or RatingConfig()

    eligible = [item for item in items if is_eligible(item, category)]
    if len(eligible) < MIN_POOL_SIZE:
        return []

    candidates = []
    for item in eligible:
        jitter = rng.uniform(1 - selection.jitter, 1 + selection.jitter)
        candidates.append(
            Candidate(
                item=item,
                priority_score=priority_score(
                    item, selection, rating.initial_rating_deviation
                )
                * jitter,
                ucb_score=ucb_score(
                    item.rating,
                    item.match_count,
                    state.total_comparisons,
                    state.exploration_weight,
                ),
            )
        )
    return candidates
