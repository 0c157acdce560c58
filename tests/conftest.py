"""Shared fixtures for Library Ranker tests."""

import random

import pytest

from library_ranker.core.config import RankerConfig
from library_ranker.models import LibraryItem
from library_ranker.services import RankingService
from library_ranker.services.storage import MemoryStore

USER = "alice"


def make_item(
    item_id: str,
    media_type: str = "movie",
    rating: float = 1500.0,
    match_count: int = 0,
    user_id: str = USER,
    **fields,
) -> LibraryItem:
    """Build an item with a media reference derived from its id."""
    fields.setdefault("title", item_id.title())
    fields.setdefault("media_id", f"tmdb:{item_id}")
    return LibraryItem(
        id=item_id,
        user_id=user_id,
        media_type=media_type,
        rating=rating,
        match_count=match_count,
        **fields,
    )


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def service(store: MemoryStore) -> RankingService:
    return RankingService(store, RankerConfig(seed=7), rng=random.Random(7))  # noqa: S311


@pytest.fixture
async def seeded_service(service: RankingService) -> RankingService:
    """Service with an initialized system and two fresh movies."""
    await service.initialize_system(USER)
    await service.store.add_item(make_item("matrix"))
    await service.store.add_item(make_item("alien"))
    return service
