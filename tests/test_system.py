"""Tests for the system state lifecycle."""

import pytest

from library_ranker.core.config import GLOBAL_SCOPE, SystemDefaults
from library_ranker.core.errors import InvalidArgumentError, SystemNotInitializedError
from library_ranker.models import utc_now
from library_ranker.services import MatchRecorder, SystemLifecycle

from .conftest import USER, make_item


@pytest.fixture
def lifecycle(store) -> SystemLifecycle:
    return SystemLifecycle(store)


class TestInitialize:
    """Tests for system initialization."""

    async def test_creates_state_with_defaults(self, lifecycle, store):
        """Test a new state carries the configured defaults."""
        result = await lifecycle.initialize_system(USER, USER)

        assert result.created
        state = await store.get_system_state(USER)
        assert state.total_comparisons == 0
        assert state.exploration_weight == pytest.approx(1.414)
        assert state.provisional_threshold == 15
        assert state.decay_rate == pytest.approx(0.015)
        assert state.tau == pytest.approx(0.5)

    async def test_idempotent(self, lifecycle, store):
        """Test a second initialization reports existing state and keeps counters."""
        await lifecycle.initialize_system(USER, USER)
        await store.add_item(make_item("a"))
        await store.add_item(make_item("b"))
        await MatchRecorder(store).record(USER, "a", "b", USER)

        result = await lifecycle.initialize_system(USER, USER)

        assert not result.created
        assert result.items_initialized == 0
        assert (await store.get_system_state(USER)).total_comparisons == 1
        assert (await store.get_item(USER, "a")).rating == 1515.0

    async def test_custom_defaults(self, store):
        """Test configured defaults are written to new state."""
        lifecycle = SystemLifecycle(store, defaults=SystemDefaults(provisional_threshold=8))
        await lifecycle.initialize_state("shared")
        assert (await store.get_system_state("shared")).provisional_threshold == 8

    async def test_defaults_only_uninitialized_items(self, lifecycle, store):
        """Test only items lacking rating fields are defaulted."""
        await store.add_item(
            make_item("legacy", rating=0.0, rating_deviation=0.0, has_rating_fields=False)
        )
        await store.add_item(make_item("rated", rating=1620.0, match_count=12))

        result = await lifecycle.initialize_system(USER, USER)

        assert result.items_initialized == 1
        legacy = await store.get_item(USER, "legacy")
        assert legacy.rating == 1500.0
        assert legacy.rating_deviation == 350.0
        assert legacy.volatility == pytest.approx(0.875)
        assert legacy.has_rating_fields
        rated = await store.get_item(USER, "rated")
        assert rated.rating == 1620.0
        assert rated.match_count == 12


class TestReset:
    """Tests for system reset."""

    async def test_reset_restores_defaults(self, lifecycle, store):
        """Test every item, the counters and the history are reset."""
        await lifecycle.initialize_system(USER, USER)
        ids = [f"m{i}" for i in range(10)]
        for item_id in ids:
            await store.add_item(make_item(item_id))
        recorder = MatchRecorder(store)
        for i in range(15):
            await recorder.record(USER, ids[i % 10], ids[(i + 3) % 10], USER)

        result = await lifecycle.reset_system(USER, USER, confirm=True)

        assert result.items_reset == 10
        for item in await store.list_items(USER):
            assert item.rating == 1500.0
            assert item.match_count == 0
            assert item.rating_deviation == 350.0
            assert item.provisional
            assert item.last_compared is None
            assert item.category_ratings == {}
        assert (await store.get_system_state(USER)).total_comparisons == 0
        assert await store.list_history(USER) == []

    async def test_reset_requires_confirmation(self, lifecycle, store):
        """Test reset refuses to run unconfirmed and changes nothing."""
        await lifecycle.initialize_system(USER, USER)
        await store.add_item(make_item("a"))
        await store.add_item(make_item("b"))
        await MatchRecorder(store).record(USER, "a", "b", USER)

        with pytest.raises(InvalidArgumentError):
            await lifecycle.reset_system(USER, USER)

        assert (await store.get_item(USER, "a")).rating == 1515.0
        assert len(await store.list_history(USER)) == 1

    async def test_reset_keeps_creation_time(self, lifecycle, store):
        """Test the state creation timestamp survives a reset."""
        await lifecycle.initialize_state(USER)
        created_at = (await store.get_system_state(USER)).created_at

        await lifecycle.reset_system(USER, USER, confirm=True)

        assert (await store.get_system_state(USER)).created_at == created_at

    async def test_reset_keeps_tuned_parameters(self, lifecycle, store):
        """Test reset zeroes the counters but keeps tuned parameters."""
        await lifecycle.initialize_state(USER)
        await store.add_item(make_item("a"))
        await store.add_item(make_item("b"))
        await MatchRecorder(store).record(USER, "a", "b", USER)
        await lifecycle.update_parameters(USER, exploration_weight=2.5, provisional_threshold=5)
        state = await store.get_system_state(USER)
        state.last_rd_decay = utc_now()
        await store.put_system_state(state)

        await lifecycle.reset_system(USER, USER, confirm=True)

        state = await store.get_system_state(USER)
        assert state.total_comparisons == 0
        assert state.last_rd_decay is None
        assert state.exploration_weight == pytest.approx(2.5)
        assert state.provisional_threshold == 5
        assert state.decay_rate == pytest.approx(0.015)

    async def test_shared_scope_reset_keeps_tuned_parameters(self, lifecycle, store):
        """Test one user's reset of a shared scope keeps its tuned parameters."""
        await lifecycle.initialize_state(GLOBAL_SCOPE)
        await lifecycle.update_parameters(GLOBAL_SCOPE, tau=0.8)
        await store.add_item(make_item("theirs", rating=1600.0, user_id="bob"))

        await lifecycle.reset_system(USER, GLOBAL_SCOPE, confirm=True)

        assert (await store.get_system_state(GLOBAL_SCOPE)).tau == pytest.approx(0.8)
        assert (await store.get_item("bob", "theirs")).rating == 1600.0

    async def test_reset_leaves_other_users(self, lifecycle, store):
        """Test reset touches only the given user's items."""
        await store.add_item(make_item("mine", rating=1600.0))
        await store.add_item(make_item("theirs", rating=1600.0, user_id="bob"))

        await lifecycle.reset_system(USER, USER, confirm=True)

        assert (await store.get_item(USER, "mine")).rating == 1500.0
        assert (await store.get_item("bob", "theirs")).rating == 1600.0


class TestUpdateParameters:
    """Tests for tuning system parameters."""

    async def test_updates_values(self, lifecycle, store):
        """Test valid changes are persisted."""
        await lifecycle.initialize_state(USER)
        state = await lifecycle.update_parameters(USER, exploration_weight=2.0, decay_rate=0.02)

        assert state.exploration_weight == pytest.approx(2.0)
        stored = await store.get_system_state(USER)
        assert stored.decay_rate == pytest.approx(0.02)
        assert stored.provisional_threshold == 15

    async def test_unknown_parameter(self, lifecycle):
        """Test unknown parameter names are rejected."""
        await lifecycle.initialize_state(USER)
        with pytest.raises(InvalidArgumentError):
            await lifecycle.update_parameters(USER, k_factor=40)

    async def test_out_of_range_value(self, lifecycle, store):
        """Test invalid values are rejected and nothing changes."""
        await lifecycle.initialize_state(USER)
        with pytest.raises(InvalidArgumentError):
            await lifecycle.update_parameters(USER, decay_rate=-0.5)
        assert (await store.get_system_state(USER)).decay_rate == pytest.approx(0.015)

    async def test_requires_state(self, lifecycle):
        """Test tuning a missing state raises."""
        with pytest.raises(SystemNotInitializedError):
            await lifecycle.update_parameters(USER, tau=0.7)
