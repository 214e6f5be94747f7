from .base import PlannerStore
from .json_store import JsonFileStore
from .postgres_store import PostgresStore

__all__ = ["JsonFileStore", "PlannerStore", "PostgresStore"]
