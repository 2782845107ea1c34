from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from .core.errors import ConflictError, NotFoundError, StorageError, ValidationError
from .core.sanitize import sanitize
from .core.schemas import (
    BROADCAST,
    JOIN_TEXT,
    Invalid,
    Message,
    Participant,
    validate_message,
    validate_participant,
)
from .core.visibility import visible_messages
from .store.collections import Storage


logger = logging.getLogger("chatroom.service")

Clock = Callable[[], datetime]


def epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def clock_time(moment: datetime) -> str:
    return moment.strftime("%H:%M:%S")


def status_message(name: str, text: str, moment: datetime) -> Dict[str, Any]:
    """Synthetic join/leave notice addressed to everyone."""
    return Message(
        from_=name, to=BROADCAST, text=text, type="status", time=clock_time(moment)
    ).to_document()


def _clean(value: Any) -> Any:
    """Sanitize strings; leave anything else for the validator to reject."""
    return sanitize(value) if isinstance(value, str) else value


class ChatService:
    """Chat operations over an explicitly passed storage.

    Storage failures surface as StorageError; client mistakes as
    ValidationError, ConflictError or NotFoundError.
    """

    def __init__(self, storage: Storage, now: Optional[Clock] = None) -> None:
        self.storage = storage
        self.now: Clock = now or datetime.now

    async def register(self, raw_name: Any) -> Participant:
        result = validate_participant({"name": _clean(raw_name)})
        if isinstance(result, Invalid):
            raise ValidationError(result.describe())
        name = result.value.name

        try:
            if await self.storage.participants.find_one({"name": name}):
                raise ConflictError(f"Participant {name!r} is already registered")
            moment = self.now()
            participant = Participant(name=name, lastStatus=epoch_ms(moment))
            await self.storage.participants.insert_one(participant.model_dump())
        except ConflictError:
            raise
        except Exception as exc:
            raise StorageError("Error when trying to register participant") from exc

        # Not transactional with the insert above: a lost join notice is tolerated
        try:
            await self.storage.messages.insert_one(status_message(name, JOIN_TEXT, moment))
        except Exception:
            logger.exception("Registered %s but failed to store join message", name)

        logger.info("Participant joined: %s", name)
        return participant

    async def list_participants(self) -> List[Dict[str, Any]]:
        try:
            docs = await self.storage.participants.find()
        except Exception as exc:
            raise StorageError("Failed to retrieve participants from storage") from exc
        return docs

    async def send_message(self, raw_user: Any, payload: Any) -> Dict[str, Any]:
        if not isinstance(payload, dict):
            raise ValidationError("payload must be an object")
        cleaned = {key: _clean(payload.get(key)) for key in ("to", "text", "type")}
        user = sanitize(raw_user)

        result = validate_message(cleaned)
        if isinstance(result, Invalid):
            raise ValidationError(result.describe())
        if not user:
            raise ValidationError("Missing sender")

        try:
            sender = await self.storage.participants.find_one({"name": user})
        except Exception as exc:
            raise StorageError("Failed to look up sender") from exc
        if not sender:
            raise ValidationError(f"Unknown sender {user!r}")

        body = result.value
        doc = Message(
            from_=user,
            to=body.to,
            text=body.text,
            type=body.type,
            time=clock_time(self.now()),
        ).to_document()
        try:
            await self.storage.messages.insert_one(doc)
        except Exception as exc:
            raise StorageError("Failed to store message") from exc
        return doc

    async def get_messages(self, raw_user: Any, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        viewer = sanitize(raw_user) or None
        try:
            docs = await self.storage.messages.find()
        except Exception as exc:
            raise StorageError("Failed to retrieve messages from storage") from exc
        return visible_messages(docs, viewer, limit)

    async def refresh_status(self, raw_user: Any) -> None:
        """Extend the inactivity deadline of a registered participant."""
        user = sanitize(raw_user)
        if not user:
            raise NotFoundError("Missing participant")
        try:
            if not await self.storage.participants.find_one({"name": user}):
                raise NotFoundError(f"Unknown participant {user!r}")
            await self.storage.participants.update_one(
                {"name": user}, {"$set": {"lastStatus": epoch_ms(self.now())}}
            )
        except NotFoundError:
            raise
        except Exception as exc:
            raise StorageError("Failed to update status") from exc
