"""Public ranking operations: pair selection, recording, lifecycle and standings."""

from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import datetime

import structlog

from library_ranker.core.config import (
    GLOBAL_SCOPE,
    RankerConfig,
    validate_category,
)
from library_ranker.core.errors import InvalidArgumentError, SystemNotInitializedError
from library_ranker.models import LibraryItem, SystemState, utc_now
from library_ranker.ranking import (
    ComparisonOutcome,
    as_utc,
    days_between,
    decayed_rating_deviation,
)
from library_ranker.services.recorder import MatchRecorder
from library_ranker.services.selection import (
    ComparisonPair,
    InsufficientItems,
    build_candidate_pool,
    is_eligible,
    select_pair,
)
from library_ranker.services.storage import ItemStore, ItemUpdate
from library_ranker.services.system import (
    InitializationResult,
    ResetResult,
    SystemLifecycle,
    new_system_state,
)

logger = structlog.get_logger()

MIN_DECAY_DAYS = 1.0


@dataclass(frozen=True)
class RankedItem:
    """One row of a user's standings."""

    rank: int
    item_id: str
    title: str
    media_type: str
    rating: float
    match_count: int
    rating_deviation: float
    provisional: bool


@dataclass(frozen=True)
class DecayResult:
    """Outcome of ``apply_decay``."""

    items_decayed: int


class RankingService:
    """Entry point for callers such as the CLI or an API handler.

    Coordinates candidate scoring, pair selection, the match recorder and the
    system lifecycle over one item store.
    """

    def __init__(
        self,
        store: ItemStore,
        config: RankerConfig | None = None,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            store: Persistence collaborator.
            config: Ranker configuration; defaults when None.
            rng: Random source for jitter and lead-item draws. Seeded from
                ``config.seed`` when None.
        """
        self.store = store
        self.config = config or RankerConfig()
        self.rng = rng or random.Random(self.config.seed)  # noqa: S311
        self.recorder = MatchRecorder(store, self.config.rating, self.config.selection)
        self.lifecycle = SystemLifecycle(store, self.config.rating, self.config.system)

    def scope_for(self, user_id: str | None) -> str:
        """System state scope used for a user."""
        if user_id is None or self.config.shared_state:
            return GLOBAL_SCOPE
        return user_id

    async def _state_or_defaults(self, scope: str) -> SystemState:
        """Stored state, or unsaved defaults when the scope was never initialized."""
        try:
            return await self.store.get_system_state(scope)
        except SystemNotInitializedError:
            logger.debug("system_state_missing", scope=scope)
            return new_system_state(scope, self.config.system)

    # ==================== Items ====================

    async def add_item(
        self,
        user_id: str,
        media_id: str,
        media_type: str,
        title: str = "",
        item_id: str | None = None,
    ) -> LibraryItem:
        """Add an item to a user's library with default rating fields."""
        if validate_category(media_type) is None:
            raise InvalidArgumentError("media_type", "A media type is required.")
        rating = self.config.rating
        item = LibraryItem(
            user_id=user_id,
            media_id=media_id,
            media_type=media_type,
            title=title,
            rating=rating.initial_rating,
            rating_deviation=rating.initial_rating_deviation,
            volatility=rating.initial_volatility,
        )
        if item_id is not None:
            item.id = item_id
        return await self.store.add_item(item)

    # ==================== Comparisons ====================

    async def select_next_pair(
        self, user_id: str, category: str | None = None
    ) -> ComparisonPair | InsufficientItems:
        """Choose the next two items to compare.

        Returns:
            A ComparisonPair, or InsufficientItems when fewer than two items
            are eligible.
        """
        validate_category(category)
        state = await self._state_or_defaults(self.scope_for(user_id))
        items = await self.store.list_items(user_id, category)

        candidates = build_candidate_pool(
            items,
            state,
            self.rng,
            category=category,
            selection=self.config.selection,
            rating=self.config.rating,
        )
        if not candidates:
            available = sum(1 for item in items if is_eligible(item, category))
            logger.info("insufficient_items", user_id=user_id, available=available)
            return InsufficientItems(available=available)

        history = await self.store.list_history(
            user_id, limit=self.config.selection.history_size, most_recent_first=True
        )
        pair = select_pair(candidates, history, self.rng, self.config.selection)
        if pair is None:
            return InsufficientItems(available=len(candidates))

        logger.info(
            "pair_selected",
            user_id=user_id,
            item_a=pair.item_a.id,
            item_b=pair.item_b.id,
            pool=len(candidates),
        )
        return pair

    async def record_comparison(
        self,
        user_id: str,
        winner_id: str,
        loser_id: str,
        is_draw: bool = False,
    ) -> ComparisonOutcome:
        """Record a user decision and return the rating changes."""
        return await self.recorder.record(
            user_id, winner_id, loser_id, self.scope_for(user_id), is_draw=is_draw
        )

    # ==================== Lifecycle ====================

    async def initialize_system(self, user_id: str | None = None) -> InitializationResult:
        """Create system state (once) and default the user's uninitialized items."""
        return await self.lifecycle.initialize_system(self.scope_for(user_id), user_id)

    async def reset_system(self, user_id: str, confirm: bool = False) -> ResetResult:
        """Reset ratings, counters and history for a user. Requires ``confirm=True``."""
        return await self.lifecycle.reset_system(user_id, self.scope_for(user_id), confirm)

    async def update_parameters(
        self, user_id: str | None = None, **changes: float | int
    ) -> SystemState:
        """Tune exploration weight, provisional threshold, decay rate or tau."""
        return await self.lifecycle.update_parameters(self.scope_for(user_id), **changes)

    # ==================== Standings ====================

    async def get_ranked_items(
        self,
        user_id: str,
        category: str | None = None,
        limit: int = 20,
        min_matches: int = 0,
    ) -> list[RankedItem]:
        """Items with at least ``min_matches`` comparisons, best rated first.

        Ties are broken by match count (more first), then title.
        """
        validate_category(category)
        if limit < 1:
            raise InvalidArgumentError("limit", "Limit must be at least 1.")
        if min_matches < 0:
            raise InvalidArgumentError("min_matches", "Minimum matches cannot be negative.")

        items = await self.store.list_items(user_id, category)
        qualified = [item for item in items if item.match_count >= min_matches]
        qualified.sort(key=lambda i: (-i.rating, -i.match_count, i.title))

        return [
            RankedItem(
                rank=rank,
                item_id=item.id,
                title=item.title,
                media_type=item.media_type,
                rating=item.rating,
                match_count=item.match_count,
                rating_deviation=item.rating_deviation,
                provisional=item.provisional,
            )
            for rank, item in enumerate(qualified[:limit], 1)
        ]

    # ==================== Maintenance ====================

    async def apply_decay(self, user_id: str, now: datetime | None = None) -> DecayResult:
        """Grow RD of items not compared for at least a day.

        Growth covers the time since the later of the item's last comparison
        and the previous decay run. Maintenance only; never invoked by the
        comparison path.

        Raises:
            SystemNotInitializedError: If the user's system state is missing.
        """
        now = now or utc_now()
        scope = self.scope_for(user_id)
        state = await self.store.get_system_state(scope)
        ceiling = self.config.rating.initial_rating_deviation

        updates = []
        for item in await self.store.list_items(user_id):
            if item.last_compared is None:
                continue
            if days_between(item.last_compared, now) < MIN_DECAY_DAYS:
                continue
            since = item.last_compared
            if state.last_rd_decay is not None:
                since = max(since, state.last_rd_decay, key=as_utc)
            decayed = decayed_rating_deviation(
                item.rating_deviation, days_between(since, now), state.decay_rate, ceiling
            )
            if decayed != item.rating_deviation:
                updates.append(ItemUpdate(item.id, {"rating_deviation": decayed}))

        if updates:
            await self.store.batch_update_items(user_id, updates)
        state.last_rd_decay = now
        state.updated_at = now
        await self.store.put_system_state(state)
        logger.info("rating_decay_applied", user_id=user_id, items=len(updates))
        return DecayResult(items_decayed=len(updates))
