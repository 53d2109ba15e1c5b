"""Infrastructure layer: SQLite form store, change feed, concrete producers."""

from formpipe.infrastructure.store import FormStore, StoreError

__all__ = ["FormStore", "StoreError"]
