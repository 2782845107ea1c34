from __future__ import annotations

from urllib.parse import urlparse

from .collections import Collection, MemoryCollection, Storage, memory_storage
from .sqlite import SqliteStorage, open_sqlite_storage


async def open_storage(uri: str, name: str = "chatroom") -> Storage:
    """Open storage from a URI: ``memory://``, ``sqlite:///path.db`` or ``sqlite://:memory:``."""
    parsed = urlparse(uri)
    if parsed.scheme == "memory":
        return memory_storage()
    if parsed.scheme == "sqlite":
        # everything after "sqlite://": "/abs/path.db", "rel.db" or ":memory:"
        path = uri.split("://", 1)[1]
        if not path:
            raise ValueError(f"sqlite storage URI needs a path: {uri!r}")
        return await open_sqlite_storage(path, name)
    raise ValueError(f"Unsupported storage URI: {uri!r}")


__all__ = [
    "Collection",
    "MemoryCollection",
    "SqliteStorage",
    "Storage",
    "memory_storage",
    "open_storage",
]
