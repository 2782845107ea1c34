from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

import aiosqlite

from .collections import (
    MESSAGES,
    PARTICIPANTS,
    Document,
    Filter,
    Storage,
    apply_set,
    matches,
)


logger = logging.getLogger("chatroom.store")

_IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class SqliteCollection:
    """JSON documents in a single table; filtering happens in Python.

    All collections share one connection and one write lock, so each
    operation is atomic with respect to the others.
    """

    def __init__(self, db: aiosqlite.Connection, table: str, lock: asyncio.Lock) -> None:
        if not _IDENT_RE.match(table):
            raise ValueError(f"Invalid table name: {table!r}")
        self.name = table
        self._db = db
        self._lock = lock

    async def create(self) -> None:
        await self._db.execute(
            f"CREATE TABLE IF NOT EXISTS {self.name} ("
            "id INTEGER PRIMARY KEY AUTOINCREMENT, doc TEXT NOT NULL)"
        )
        await self._db.commit()

    async def _rows(self) -> List[Tuple[int, Document]]:
        cur = await self._db.execute(f"SELECT id, doc FROM {self.name} ORDER BY id")
        rows = await cur.fetchall()
        await cur.close()
        return [(row[0], json.loads(row[1])) for row in rows]

    async def insert_one(self, doc: Document) -> None:
        async with self._lock:
            await self._db.execute(
                f"INSERT INTO {self.name}(doc) VALUES(?)", (json.dumps(doc),)
            )
            await self._db.commit()

    async def insert_many(self, docs: Iterable[Document]) -> None:
        payload = [(json.dumps(d),) for d in docs]
        if not payload:
            return
        async with self._lock:
            await self._db.executemany(f"INSERT INTO {self.name}(doc) VALUES(?)", payload)
            await self._db.commit()

    async def find_one(self, filter: Filter) -> Optional[Document]:
        async with self._lock:
            for _, doc in await self._rows():
                if matches(doc, filter):
                    return doc
        return None

    async def find(self, filter: Optional[Filter] = None) -> List[Document]:
        async with self._lock:
            return [doc for _, doc in await self._rows() if matches(doc, filter)]

    async def update_one(self, filter: Filter, update: Dict[str, Any]) -> int:
        async with self._lock:
            for row_id, doc in await self._rows():
                if matches(doc, filter):
                    await self._db.execute(
                        f"UPDATE {self.name} SET doc=? WHERE id=?",
                        (json.dumps(apply_set(doc, update)), row_id),
                    )
                    await self._db.commit()
                    return 1
        return 0

    async def delete_many(self, filter: Filter) -> int:
        async with self._lock:
            ids = [(row_id,) for row_id, doc in await self._rows() if matches(doc, filter)]
            if ids:
                await self._db.executemany(f"DELETE FROM {self.name} WHERE id=?", ids)
                await self._db.commit()
        return len(ids)


class SqliteStorage(Storage):
    def __init__(self, db: aiosqlite.Connection, participants: SqliteCollection, messages: SqliteCollection) -> None:
        super().__init__(participants, messages)
        self._db = db

    async def close(self) -> None:
        await self._db.close()


async def open_sqlite_storage(path: str, name: str = "chatroom") -> SqliteStorage:
    db = await aiosqlite.connect(path)
    lock = asyncio.Lock()
    participants = SqliteCollection(db, f"{name}_{PARTICIPANTS}", lock)
    messages = SqliteCollection(db, f"{name}_{MESSAGES}", lock)
    for coll in (participants, messages):
        await coll.create()
    logger.info("Opened sqlite storage %s (prefix=%s)", path, name)
    return SqliteStorage(db, participants, messages)
