import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Column
from sqlmodel import JSON, Field, SQLModel


def utc_now() -> datetime:
    return datetime.now(UTC)


class LibraryItem(SQLModel, table=True):
    """A media item in a user's library, eligible for pairwise comparison."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    user_id: str = Field(index=True)
    media_id: str = ""
    media_type: str = Field(index=True)
    title: str = ""
    rating: float = 1500.0
    match_count: int = 0
    rating_deviation: float = 350.0
    volatility: float = 0.875
    provisional: bool = True
    has_rating_fields: bool = True
    last_compared: datetime | None = None
    category_ratings: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utc_now)
