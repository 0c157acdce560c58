from datetime import datetime

from sqlmodel import Field, SQLModel

from .item import utc_now


class SystemState(SQLModel, table=True):
    """Global tuning parameters and counters for one scope."""

    scope: str = Field(primary_key=True)
    total_comparisons: int = 0
    exploration_weight: float = 1.414
    provisional_threshold: int = 15
    decay_rate: float = 0.015
    tau: float = 0.5
    last_rd_decay: datetime | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
