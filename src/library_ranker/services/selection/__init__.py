from .candidates import (
    Candidate,
    build_candidate_pool,
    exploration_need,
    is_eligible,
    priority_score,
    ucb_score,
)
from .pairing import (
    ComparisonPair,
    InsufficientItems,
    match_affinity,
    pair_key,
    rating_similarity,
    select_pair,
)

__all__ = [
    "Candidate",
    "ComparisonPair",
    "InsufficientItems",
    "build_candidate_pool",
    "exploration_need",
    "is_eligible",
    "match_affinity",
    "pair_key",
    "priority_score",
    "rating_similarity",
    "select_pair",
    "ucb_score",
]
