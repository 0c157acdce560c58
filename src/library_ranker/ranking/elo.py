"""Elo rating calculations for Library Ranker."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_K_FACTOR = 15.0
K_ADJUSTMENT_STRENGTH = 7.5

NEW_ITEM_MATCHES = 5
DEVELOPING_ITEM_MATCHES = 10
VETERAN_ITEM_MATCHES = 50


@dataclass(frozen=True)
class RatingChange:
    """Rating movement for one side of a comparison.

    Attributes:
        item_id: Item identifier (empty until the caller fills it in).
        old_rating: Rating before the comparison.
        new_rating: Rating after the comparison, rounded to one decimal.
        rating_change: new_rating - old_rating.
    """

    item_id: str
    old_rating: float
    new_rating: float
    rating_change: float


@dataclass(frozen=True)
class ComparisonOutcome:
    """Result of resolving one comparison.

    For draws, ``winner`` is simply the first item passed in.
    """

    winner: RatingChange
    loser: RatingChange
    is_draw: bool = False

    def with_ids(self, winner_id: str, loser_id: str) -> ComparisonOutcome:
        """Return a copy with item ids attached to both sides."""
        return ComparisonOutcome(
            winner=RatingChange(
                winner_id,
                self.winner.old_rating,
                self.winner.new_rating,
                self.winner.rating_change,
            ),
            loser=RatingChange(
                loser_id,
                self.loser.old_rating,
                self.loser.new_rating,
                self.loser.rating_change,
            ),
            is_draw=self.is_draw,
        )


def calculate_expected_outcome(rating_a: float, rating_b: float) -> float:
    """Calculate expected score for item A against item B.

    Uses the standard Elo formula:
    E_A = 1 / (1 + 10^((R_B - R_A) / 400))

    Args:
        rating_a: Rating of item A.
        rating_b: Rating of item B.

    Returns:
        Probability that A is preferred (0.0 to 1.0).
    """
    return 1.0 / (1.0 + 10 ** ((rating_b - rating_a) / 400))


def adjusted_k_factor(
    match_count: int,
    provisional_threshold: int,
    base_k: float = DEFAULT_K_FACTOR,
) -> float:
    """Scale the base K-factor by how experienced an item is.

    Tiers are checked in order, so a provisional threshold above 50 keeps
    items on the provisional tier until they cross it.

    Args:
        match_count: Comparisons the item has taken part in.
        provisional_threshold: Match count at which an item stops being provisional.
        base_k: Unscaled learning rate.

    Returns:
        Effective K-factor for this item.
    """
    if match_count < NEW_ITEM_MATCHES:
        return base_k * 2.0
    if match_count < DEVELOPING_ITEM_MATCHES:
        return base_k * 1.5
    if match_count < provisional_threshold:
        return base_k * 1.2
    if match_count >= VETERAN_ITEM_MATCHES:
        return base_k * 0.8
    return base_k


def _gap_multiplier(winner_rating: float, loser_rating: float, strength: float) -> float:
    """Dampen expected wins and amplify upsets based on the rating gap."""
    rating_diff = winner_rating - loser_rating
    adjustment = abs(rating_diff) / 400 * strength
    if rating_diff > 0:
        return max(0.5, 1.0 - adjustment)
    return min(1.5, 1.0 + adjustment)


def resolve_comparison(
    winner_rating: float,
    loser_rating: float,
    winner_matches: int,
    loser_matches: int,
    provisional_threshold: int,
    is_draw: bool = False,
    base_k: float = DEFAULT_K_FACTOR,
    adjustment_strength: float = K_ADJUSTMENT_STRENGTH,
) -> ComparisonOutcome:
    """Compute new ratings for both sides of a comparison.

    Args:
        winner_rating: Current rating of the preferred item.
        loser_rating: Current rating of the other item.
        winner_matches: Prior match count of the preferred item.
        loser_matches: Prior match count of the other item.
        provisional_threshold: Provisional threshold from the system state.
        is_draw: Whether the user had no preference.
        base_k: Base learning rate.
        adjustment_strength: Gap sensitivity of the dampening/amplification step.

    Returns:
        ComparisonOutcome with old and new ratings (item ids left empty).
    """
    winner_expected = calculate_expected_outcome(winner_rating, loser_rating)
    loser_expected = calculate_expected_outcome(loser_rating, winner_rating)

    winner_k = adjusted_k_factor(winner_matches, provisional_threshold, base_k)
    loser_k = adjusted_k_factor(loser_matches, provisional_threshold, base_k)

    winner_actual, loser_actual = (0.5, 0.5) if is_draw else (1.0, 0.0)

    if not is_draw:
        multiplier = _gap_multiplier(winner_rating, loser_rating, adjustment_strength)
        winner_k *= multiplier
        loser_k *= multiplier

    new_winner = round(winner_rating + winner_k * (winner_actual - winner_expected), 1)
    new_loser = round(loser_rating + loser_k * (loser_actual - loser_expected), 1)

    return ComparisonOutcome(
        winner=RatingChange("", winner_rating, new_winner, new_winner - winner_rating),
        loser=RatingChange("", loser_rating, new_loser, new_loser - loser_rating),
        is_draw=is_draw,
    )


def shrink_rating_deviation(
    initial_deviation: float,
    match_count: int,
    shrink_matches: float = VETERAN_ITEM_MATCHES,
) -> float:
    """RD after ``match_count`` comparisons; halved at ``shrink_matches``, never zero."""
    return initial_deviation / (1 + match_count / shrink_matches)
