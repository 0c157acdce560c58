"""Apply resolved comparisons to persisted item and system state."""

from __future__ import annotations

from datetime import datetime
from typing import Any

import structlog

from library_ranker.core.config import RatingConfig, SelectionConfig, validate_rating
from library_ranker.core.errors import InvalidArgumentError
from library_ranker.models import ComparisonRecord, LibraryItem, SystemState, utc_now
from library_ranker.ranking import ComparisonOutcome, resolve_comparison, shrink_rating_deviation
from library_ranker.services.storage import ItemStore, ItemUpdate

logger = structlog.get_logger()


class MatchRecorder:
    """Records one user decision as a single atomic store write.

    Both items' rating fields, the system comparison counter and the new
    history record are committed together; history pruning runs afterwards
    and never fails the recording.
    """

    def __init__(
        self,
        store: ItemStore,
        rating: RatingConfig | None = None,
        selection: SelectionConfig | None = None,
    ) -> None:
        """Initialize the recorder.

        Args:
            store: Persistence collaborator.
            rating: Rating parameters; defaults when None.
            selection: Selection parameters (history window size); defaults when None.
        """
        self.store = store
        self.rating = rating or RatingConfig()
        self.selection = selection or SelectionConfig()

    async def record(
        self,
        user_id: str,
        winner_id: str,
        loser_id: str,
        scope: str,
        is_draw: bool = False,
    ) -> ComparisonOutcome:
        """Resolve and persist one comparison.

        Args:
            user_id: Owner of both items.
            winner_id: Preferred item (first participant for a draw).
            loser_id: Other item.
            scope: System state scope to update.
            is_draw: Whether the user had no preference.

        Returns:
            ComparisonOutcome with item ids filled in.

        Raises:
            InvalidArgumentError: If both ids are the same or a rating is not finite.
            NotFoundError: If an item or the system state is missing; nothing is written.
            StoreFailureError: If the atomic write fails; nothing is written.
        """
        if winner_id == loser_id:
            raise InvalidArgumentError("loser_id", "An item cannot be compared with itself.")

        winner = await self.store.get_item(user_id, winner_id)
        loser = await self.store.get_item(user_id, loser_id)
        state = await self.store.get_system_state(scope)
        validate_rating(winner.rating, "winner.rating")
        validate_rating(loser.rating, "loser.rating")

        outcome = resolve_comparison(
            winner.rating,
            loser.rating,
            winner.match_count,
            loser.match_count,
            state.provisional_threshold,
            is_draw=is_draw,
            base_k=self.rating.base_k_factor,
            adjustment_strength=self.rating.k_adjustment_strength,
        ).with_ids(winner.id, loser.id)

        now = utc_now()
        same_category = winner.media_type == loser.media_type
        updates = [
            self._build_update(winner, outcome.winner.new_rating, state, now, same_category),
            self._build_update(loser, outcome.loser.new_rating, state, now, same_category),
        ]
        record = ComparisonRecord(
            user_id=user_id,
            item_a_id=winner.id,
            item_b_id=loser.id,
            is_draw=is_draw,
            created_at=now,
        )

        await self.store.commit_comparison(user_id, updates, scope, record)
        logger.info(
            "comparison_recorded",
            user_id=user_id,
            winner=winner.id,
            loser=loser.id,
            draw=is_draw,
            winner_change=outcome.winner.rating_change,
            loser_change=outcome.loser.rating_change,
        )

        await self._prune_history(user_id)
        return outcome

    def _build_update(
        self,
        item: LibraryItem,
        new_rating: float,
        state: SystemState,
        now: datetime,
        same_category: bool,
    ) -> ItemUpdate:
        """Field changes for one participant."""
        match_count = item.match_count + 1
        rating_deviation = shrink_rating_deviation(
            self.rating.initial_rating_deviation,
            match_count,
            self.rating.rd_shrink_matches,
        )
        fields: dict[str, Any] = {
            "rating": new_rating,
            "match_count": match_count,
            "rating_deviation": rating_deviation,
            "provisional": match_count < state.provisional_threshold,
            "last_compared": now,
            "has_rating_fields": True,
        }
        if same_category:
            category_ratings = dict(item.category_ratings or {})
            category_ratings[item.media_type] = {
                "rating": new_rating,
                "rating_deviation": rating_deviation,
                "volatility": item.volatility,
                "match_count": match_count,
                "last_compared": now.isoformat(),
            }
            fields["category_ratings"] = category_ratings
        return ItemUpdate(item.id, fields)

    async def _prune_history(self, user_id: str) -> None:
        """Drop records beyond the rolling window; failures are logged only."""
        try:
            records = await self.store.list_history(user_id, most_recent_first=True)
            stale = [r.id for r in records[self.selection.history_size :]]
            if stale:
                removed = await self.store.delete_history(user_id, stale)
                logger.debug("history_pruned", user_id=user_id, removed=removed)
        except Exception as exc:
            logger.warning("history_prune_failed", user_id=user_id, error=str(exc))
