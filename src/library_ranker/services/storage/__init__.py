from .base import ItemStore, ItemUpdate
from .db_store import DBStore, create_store_engine
from .memory_store import MemoryStore

__all__ = ["DBStore", "ItemStore", "ItemUpdate", "MemoryStore", "create_store_engine"]
