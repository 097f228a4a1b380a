from .db import StorageDB
from .round_store import RoundStateStore

__all__ = ["StorageDB", "RoundStateStore"]
