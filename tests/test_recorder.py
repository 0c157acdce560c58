"""Tests for recording comparisons."""

import pytest

from library_ranker.core.config import SelectionConfig
from library_ranker.core.errors import (
    InvalidArgumentError,
    NotFoundError,
    SystemNotInitializedError,
)
from library_ranker.services import MatchRecorder, SystemLifecycle
from library_ranker.services.storage import MemoryStore

from .conftest import USER, make_item


class FailingPruneStore(MemoryStore):
    """Store whose history deletion always fails."""

    async def delete_history(self, user_id, record_ids):
        raise RuntimeError("disk full")


async def prepare(store: MemoryStore, *items) -> None:
    await SystemLifecycle(store).initialize_state(USER)
    for item in items:
        await store.add_item(item)


@pytest.fixture
async def recorder(store) -> MatchRecorder:
    await prepare(store, make_item("matrix"), make_item("alien"))
    return MatchRecorder(store)


class TestRecord:
    """Tests for MatchRecorder.record."""

    async def test_fresh_items(self, recorder, store):
        """Test two fresh items end at 1515 and 1485."""
        outcome = await recorder.record(USER, "matrix", "alien", USER)

        assert outcome.winner.item_id == "matrix"
        assert outcome.loser.item_id == "alien"

        winner = await store.get_item(USER, "matrix")
        loser = await store.get_item(USER, "alien")
        assert winner.rating == 1515.0
        assert loser.rating == 1485.0
        assert winner.match_count == 1
        assert loser.match_count == 1
        assert winner.rating_deviation == pytest.approx(350 / (1 + 1 / 50))
        assert winner.provisional
        assert winner.last_compared is not None

    async def test_updates_system_state_and_history(self, recorder, store):
        """Test the counter and history advance with each comparison."""
        await recorder.record(USER, "matrix", "alien", USER)
        await recorder.record(USER, "alien", "matrix", USER, is_draw=True)

        state = await store.get_system_state(USER)
        assert state.total_comparisons == 2

        history = await store.list_history(USER)
        assert [r.seq_no for r in history] == [2, 1]
        assert history[0].item_a_id == "alien"
        assert history[0].is_draw
        assert history[1].item_a_id == "matrix"

    async def test_same_item_rejected(self, recorder):
        """Test an item cannot be compared with itself."""
        with pytest.raises(InvalidArgumentError):
            await recorder.record(USER, "matrix", "matrix", USER)

    async def test_missing_item_writes_nothing(self, recorder, store):
        """Test a missing item aborts the comparison without partial writes."""
        with pytest.raises(NotFoundError):
            await recorder.record(USER, "matrix", "ghost", USER)

        winner = await store.get_item(USER, "matrix")
        assert winner.rating == 1500.0
        assert winner.match_count == 0
        assert (await store.get_system_state(USER)).total_comparisons == 0
        assert await store.list_history(USER) == []

    async def test_other_users_item_not_found(self, recorder, store):
        """Test items are looked up within the user's library only."""
        await store.add_item(make_item("dune", user_id="bob"))
        with pytest.raises(NotFoundError):
            await recorder.record(USER, "matrix", "dune", USER)

    async def test_missing_state(self, recorder):
        """Test recording requires an initialized system."""
        with pytest.raises(SystemNotInitializedError):
            await recorder.record(USER, "matrix", "alien", "nobody")

    async def test_non_finite_rating_rejected(self, recorder, store):
        """Test a corrupted rating is refused rather than propagated."""
        await store.add_item(make_item("broken", rating=float("nan")))
        with pytest.raises(InvalidArgumentError):
            await recorder.record(USER, "matrix", "broken", USER)
        assert (await store.get_item(USER, "matrix")).match_count == 0

    async def test_leaves_provisional_at_threshold(self, store):
        """Test an item stops being provisional once it reaches the threshold."""
        await prepare(store, make_item("a", match_count=14), make_item("b", match_count=3))
        await MatchRecorder(store).record(USER, "a", "b", USER)

        assert not (await store.get_item(USER, "a")).provisional
        assert (await store.get_item(USER, "b")).provisional


class TestCategoryRatings:
    """Tests for the per-category rating mirror."""

    async def test_same_category_mirrored(self, recorder, store):
        """Test same-category comparisons mirror into category ratings."""
        await recorder.record(USER, "matrix", "alien", USER)

        winner = await store.get_item(USER, "matrix")
        movie = winner.category_ratings["movie"]
        assert movie["rating"] == 1515.0
        assert movie["match_count"] == 1
        assert movie["rating_deviation"] == pytest.approx(winner.rating_deviation)

    async def test_cross_category_not_mirrored(self, recorder, store):
        """Test cross-category comparisons only change overall ratings."""
        await store.add_item(make_item("bebop", media_type="anime"))
        await recorder.record(USER, "bebop", "matrix", USER)

        assert (await store.get_item(USER, "bebop")).category_ratings == {}
        assert (await store.get_item(USER, "matrix")).category_ratings == {}


class TestHistoryPruning:
    """Tests for the rolling history window."""

    async def test_history_capped(self, store):
        """Test history never holds more than the window size."""
        await prepare(store, make_item("a"), make_item("b"), make_item("c"))
        recorder = MatchRecorder(store)
        ids = ["a", "b", "c"]
        for i in range(25):
            await recorder.record(USER, ids[i % 3], ids[(i + 1) % 3], USER)

        history = await store.list_history(USER)
        assert len(history) == 20
        assert history[0].seq_no == 25
        assert history[-1].seq_no == 6
        assert (await store.get_system_state(USER)).total_comparisons == 25

    async def test_prune_failure_does_not_fail_recording(self):
        """Test a failing prune is logged and the comparison still counts."""
        store = FailingPruneStore()
        await prepare(store, make_item("a"), make_item("b"))
        recorder = MatchRecorder(store, selection=SelectionConfig(history_size=1))

        await recorder.record(USER, "a", "b", USER)
        outcome = await recorder.record(USER, "b", "a", USER)

        assert outcome.winner.item_id == "b"
        assert len(await store.list_history(USER)) == 2
        assert (await store.get_item(USER, "a")).match_count == 2

    async def test_rating_deviation_stays_positive(self, store):
        """Test RD keeps shrinking but never reaches zero."""
        await prepare(store, make_item("a"), make_item("b"))
        recorder = MatchRecorder(store)
        previous = 350.0
        for _ in range(60):
            await recorder.record(USER, "a", "b", USER)
            rd = (await store.get_item(USER, "a")).rating_deviation
            assert 0 < rd < previous
            previous = rd
