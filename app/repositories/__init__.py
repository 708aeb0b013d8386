from app.repositories.collections import KeyValueCollectionsRepository

__all__ = [
    "KeyValueCollectionsRepository",
]
