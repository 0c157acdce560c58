"""Rating math for Library Ranker.

Pure functions for expected outcomes, experience-scaled K-factors,
comparison resolution and rating deviation maintenance.
"""

from library_ranker.ranking.decay import as_utc, days_between, decayed_rating_deviation
from library_ranker.ranking.elo import (
    ComparisonOutcome,
    RatingChange,
    adjusted_k_factor,
    calculate_expected_outcome,
    resolve_comparison,
    shrink_rating_deviation,
)

__all__ = [
    "ComparisonOutcome",
    "RatingChange",
    "adjusted_k_factor",
    "as_utc",
    "calculate_expected_outcome",
    "days_between",
    "decayed_rating_deviation",
    "resolve_comparison",
    "shrink_rating_deviation",
]
