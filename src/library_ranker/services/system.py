"""System state lifecycle: initialization, item field defaults and reset."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import pydantic
import structlog

from library_ranker.core.config import RatingConfig, SystemDefaults
from library_ranker.core.errors import InvalidArgumentError, SystemNotInitializedError
from library_ranker.models import SystemState, utc_now
from library_ranker.services.storage import ItemStore, ItemUpdate

logger = structlog.get_logger()


@dataclass(frozen=True)
class InitializationResult:
    """Outcome of ``initialize_system``.

    Attributes:
        created: False when the state already existed (reported, not raised).
        items_initialized: Items that received default rating fields.
    """

    created: bool
    items_initialized: int


@dataclass(frozen=True)
class ResetResult:
    """Outcome of ``reset_system``."""

    items_reset: int


def default_rating_fields(rating: RatingConfig) -> dict[str, Any]:
    """Rating fields of an item that has never been compared."""
    return {
        "rating": rating.initial_rating,
        "match_count": 0,
        "rating_deviation": rating.initial_rating_deviation,
        "volatility": rating.initial_volatility,
        "provisional": True,
        "last_compared": None,
        "category_ratings": {},
        "has_rating_fields": True,
    }


def new_system_state(scope: str, defaults: SystemDefaults) -> SystemState:
    """Fresh state for ``scope`` with zeroed counters."""
    return SystemState(
        scope=scope,
        total_comparisons=0,
        exploration_weight=defaults.exploration_weight,
        provisional_threshold=defaults.provisional_threshold,
        decay_rate=defaults.decay_rate,
        tau=defaults.tau,
    )


class SystemLifecycle:
    """Creates, tunes and resets system state and item rating fields."""

    def __init__(
        self,
        store: ItemStore,
        rating: RatingConfig | None = None,
        defaults: SystemDefaults | None = None,
    ) -> None:
        self.store = store
        self.rating = rating or RatingConfig()
        self.defaults = defaults or SystemDefaults()

    async def initialize_state(self, scope: str) -> bool:
        """Create the state for ``scope`` unless it exists.

        Returns:
            True when created, False when it already existed.
        """
        try:
            await self.store.get_system_state(scope)
        except SystemNotInitializedError:
            await self.store.put_system_state(new_system_state(scope, self.defaults))
            logger.info("system_state_created", scope=scope)
            return True
        logger.info("system_state_exists", scope=scope)
        return False

    async def initialize_item_fields(self, user_id: str) -> int:
        """Give default rating fields to items that lack them.

        Safe to re-run: items that already carry rating fields are untouched.

        Returns:
            Number of items initialized.
        """
        items = await self.store.list_items(user_id)
        fields = default_rating_fields(self.rating)
        updates = [ItemUpdate(item.id, dict(fields)) for item in items if not item.has_rating_fields]
        if updates:
            await self.store.batch_update_items(user_id, updates)
        logger.info("item_fields_initialized", user_id=user_id, count=len(updates))
        return len(updates)

    async def initialize_system(
        self, scope: str, user_id: str | None = None
    ) -> InitializationResult:
        """Create state for ``scope`` and default any of the user's uninitialized items."""
        created = await self.initialize_state(scope)
        items_initialized = await self.initialize_item_fields(user_id) if user_id else 0
        return InitializationResult(created=created, items_initialized=items_initialized)

    async def reset_system(self, user_id: str, scope: str, confirm: bool = False) -> ResetResult:
        """Reset every item of the user, the state for ``scope`` and the history.

        Counters and the decay stamp are cleared. Tuned parameters of an
        existing state are kept. Irreversible, so callers must pass ``confirm=True``.

        Raises:
            InvalidArgumentError: If ``confirm`` is not True.
        """
        if not confirm:
            raise InvalidArgumentError(
                "confirm",
                "Reset discards all ratings and history; pass confirm=True to proceed.",
            )

        items = await self.store.list_items(user_id)
        fields = default_rating_fields(self.rating)
        updates = [ItemUpdate(item.id, dict(fields)) for item in items]

        state = new_system_state(scope, self.defaults)
        try:
            existing = await self.store.get_system_state(scope)
            for name in SystemDefaults.model_fields:
                setattr(state, name, getattr(existing, name))
            state.created_at = existing.created_at
        except SystemNotInitializedError:
            pass

        await self.store.reset_user(user_id, updates, state)
        logger.warning("system_reset", user_id=user_id, scope=scope, items=len(updates))
        return ResetResult(items_reset=len(updates))

    async def update_parameters(self, scope: str, **changes: float | int) -> SystemState:
        """Change tunable parameters of an existing state.

        Args:
            scope: State scope.
            **changes: Any of exploration_weight, provisional_threshold,
                decay_rate, tau.

        Returns:
            The updated state.

        Raises:
            InvalidArgumentError: For unknown names or out-of-range values.
            SystemNotInitializedError: If the state does not exist.
        """
        state = await self.store.get_system_state(scope)
        unknown = set(changes) - set(SystemDefaults.model_fields)
        if unknown:
            raise InvalidArgumentError(
                ", ".join(sorted(unknown)),
                f"Tunable parameters are: {', '.join(SystemDefaults.model_fields)}.",
            )

        current = {name: getattr(state, name) for name in SystemDefaults.model_fields}
        try:
            validated = SystemDefaults.model_validate({**current, **changes})
        except pydantic.ValidationError as exc:
            raise InvalidArgumentError("parameters", str(exc)) from exc

        for name, value in validated.model_dump().items():
            setattr(state, name, value)
        state.updated_at = utc_now()
        await self.store.put_system_state(state)
        logger.info("system_parameters_updated", scope=scope, **changes)
        return state
