from __future__ import annotations

import asyncio
import copy
from typing import Any, Dict, Iterable, List, Optional, Protocol


Document = Dict[str, Any]
Filter = Dict[str, Any]

PARTICIPANTS = "participants"
MESSAGES = "messages"


def _match_condition(value: Any, condition: Any) -> bool:
    if isinstance(condition, dict):
        for op, operand in condition.items():
            if op == "$lte":
                if value is None or not value <= operand:
                    return False
            else:
                raise ValueError(f"Unsupported filter operator: {op}")
        return True
    return value == condition


def matches(doc: Document, filter: Optional[Filter]) -> bool:
    """Mongo-style matching: equality per field, or {"$lte": v}."""
    if not filter:
        return True
    return all(_match_condition(doc.get(k), c) for k, c in filter.items())


def apply_set(doc: Document, update: Dict[str, Any]) -> Document:
    unknown = set(update) - {"$set"}
    if unknown:
        raise ValueError(f"Unsupported update operator(s): {sorted(unknown)}")
    doc.update(update.get("$set") or {})
    return doc


class Collection(Protocol):
    name: str

    async def insert_one(self, doc: Document) -> None: ...

    async def insert_many(self, docs: Iterable[Document]) -> None: ...

    async def find_one(self, filter: Filter) -> Optional[Document]: ...

    async def find(self, filter: Optional[Filter] = None) -> List[Document]: ...

    async def update_one(self, filter: Filter, update: Dict[str, Any]) -> int: ...

    async def delete_many(self, filter: Filter) -> int: ...


class MemoryCollection:
    """Process-local collection; every operation holds the collection lock."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._docs: List[Document] = []
        self._lock = asyncio.Lock()

    async def insert_one(self, doc: Document) -> None:
        async with self._lock:
            self._docs.append(copy.deepcopy(doc))

    async def insert_many(self, docs: Iterable[Document]) -> None:
        batch = [copy.deepcopy(d) for d in docs]
        async with self._lock:
            self._docs.extend(batch)

    async def find_one(self, filter: Filter) -> Optional[Document]:
        async with self._lock:
            for doc in self._docs:
                if matches(doc, filter):
                    return copy.deepcopy(doc)
        return None

    async def find(self, filter: Optional[Filter] = None) -> List[Document]:
        async with self._lock:
            return [copy.deepcopy(d) for d in self._docs if matches(d, filter)]

    async def update_one(self, filter: Filter, update: Dict[str, Any]) -> int:
        async with self._lock:
            for doc in self._docs:
                if matches(doc, filter):
                    apply_set(doc, update)
                    return 1
        return 0

    async def delete_many(self, filter: Filter) -> int:
        async with self._lock:
            kept = [d for d in self._docs if not matches(d, filter)]
            removed = len(self._docs) - len(kept)
            self._docs = kept
        return removed


class Storage:
    """The two named collections the chat operates on."""

    def __init__(self, participants: Collection, messages: Collection) -> None:
        self.participants = participants
        self.messages = messages

    async def close(self) -> None:
        return None


def memory_storage() -> Storage:
    return Storage(MemoryCollection(PARTICIPANTS), MemoryCollection(MESSAGES))
