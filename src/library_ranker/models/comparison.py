import uuid
from datetime import datetime

from sqlmodel import Field, SQLModel

from .item import utc_now


class ComparisonRecord(SQLModel, table=True):
    """A resolved pair kept in the rolling history window."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    user_id: str = Field(index=True)
    item_a_id: str
    item_b_id: str
    is_draw: bool = False
    seq_no: int = 0
    created_at: datetime = Field(default_factory=utc_now)
