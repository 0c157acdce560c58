from .comparison import ComparisonRecord
from .item import LibraryItem, utc_now
from .system_state import SystemState

__all__ = ["ComparisonRecord", "LibraryItem", "SystemState", "utc_now"]
