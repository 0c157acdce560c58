"""Tests for candidate pool scoring."""

import math
import random

import pytest

from library_ranker.core.config import SelectionConfig
from library_ranker.models import SystemState
from library_ranker.services.selection import (
    build_candidate_pool,
    exploration_need,
    is_eligible,
    priority_score,
    ucb_score,
)

from .conftest import make_item

NO_JITTER = SelectionConfig(jitter=0.0)


@pytest.fixture
def state() -> SystemState:
    return SystemState(scope="alice", total_comparisons=10)


class TestScores:
    """Tests for the scoring helpers."""

    def test_exploration_need_bounds(self):
        """Test exploration need starts at 1 and bottoms out at 1/30."""
        assert exploration_need(0) == pytest.approx(1.0)
        assert exploration_need(30) == pytest.approx(1 / 30)
        assert exploration_need(500) == pytest.approx(1 / 30)

    def test_ucb_without_comparisons_is_rating(self):
        """Test the exploration bonus vanishes before any comparison."""
        assert ucb_score(1500, 0, 0, 1.414) == pytest.approx(1500)

    def test_ucb_bonus(self):
        """Test the UCB bonus formula."""
        expected = 1500 + 1.414 * math.sqrt(math.log(11) / 4)
        assert ucb_score(1500, 3, 10, 1.414) == pytest.approx(expected)

    def test_ucb_favors_rarely_compared(self):
        """Test fewer matches yield a larger bonus."""
        assert ucb_score(1500, 1, 100, 1.414) > ucb_score(1500, 40, 100, 1.414)

    def test_fresh_item_priority(self):
        """Test priority of an unplayed item at the initial rating."""
        # 0.5 * 1 + 0.3 * 1 + 0.2 * (100 / 200)
        assert priority_score(make_item("a"), SelectionConfig(), 350) == pytest.approx(0.9)

    def test_experience_lowers_priority(self):
        """Test matured, certain items rank below fresh ones."""
        fresh = make_item("a")
        veteran = make_item("b", match_count=60, rating_deviation=100)
        config = SelectionConfig()
        assert priority_score(veteran, config, 350) < priority_score(fresh, config, 350)


class TestEligibility:
    """Tests for candidate eligibility."""

    def test_requires_media_reference(self):
        """Test items without a media id are excluded."""
        assert not is_eligible(make_item("a", media_id=""))
        assert is_eligible(make_item("a"))

    def test_category_filter(self):
        """Test the category must match when given."""
        show = make_item("a", media_type="tv")
        assert is_eligible(show, "tv")
        assert not is_eligible(show, "movie")
        assert is_eligible(show, None)


class TestBuildCandidatePool:
    """Tests for pool construction."""

    def test_too_few_items(self, state):
        """Test fewer than two eligible items yield an empty pool."""
        items = [make_item("a"), make_item("b", media_id="")]
        assert build_candidate_pool(items, state, random.Random(1)) == []  # noqa: S311
        assert build_candidate_pool([], state, random.Random(1)) == []  # noqa: S311

    def test_filters_by_category(self, state):
        """Test only matching items enter the pool."""
        items = [make_item("a"), make_item("b"), make_item("c", media_type="anime")]
        pool = build_candidate_pool(items, state, random.Random(1), category="movie")  # noqa: S311
        assert [c.id for c in pool] == ["a", "b"]

    def test_scores_without_jitter(self, state):
        """Test unjittered priorities equal the raw score."""
        items = [make_item("a"), make_item("b", rating=1700, match_count=12)]
        pool = build_candidate_pool(
            items, state, random.Random(1), selection=NO_JITTER  # noqa: S311
        )
        for candidate in pool:
            assert candidate.priority_score == pytest.approx(
                priority_score(candidate.item, NO_JITTER, 350)
            )
            assert candidate.ucb_score == pytest.approx(
                ucb_score(candidate.rating, candidate.item.match_count, 10, 1.414)
            )

    def test_jitter_stays_in_band(self, state):
        """Test jittered priorities stay within ±10% of the raw score."""
        items = [make_item(f"m{i}") for i in range(20)]
        pool = build_candidate_pool(items, state, random.Random(3))  # noqa: S311
        for candidate in pool:
            assert 0.9 * 0.9 <= candidate.priority_score <= 0.9 * 1.1 + 1e-9

    def test_seeded_pool_is_reproducible(self, state):
        """Test the same seed produces the same scores."""
        items = [make_item(f"m{i}") for i in range(5)]
        first = build_candidate_pool(items, state, random.Random(9))  # noqa: S311
        second = build_candidate_pool(items, state, random.Random(9))  # noqa: S311
        assert [c.priority_score for c in first] == [c.priority_score for c in second]
