from __future__ import annotations

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


# Imported late so the favorites module can subclass ``Base``.
from .favorites import (  # noqa: E402
    Collection,
    CollectionItem,
    FavoriteItem,
    ITEM_TYPES,
    utcnow,
)

__all__ = [
    "Base",
    "Collection",
    "CollectionItem",
    "FavoriteItem",
    "ITEM_TYPES",
    "utcnow",
]
