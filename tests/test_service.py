import pytest

from chatroom.core.errors import ConflictError, NotFoundError, StorageError, ValidationError
from chatroom.service import ChatService, epoch_ms
from chatroom.store import memory_storage


class BrokenCollection:
    """Collection whose every call fails, to exercise storage error paths."""

    name = "broken"

    def __getattr__(self, attr):
        async def _fail(*args, **kwargs):
            raise RuntimeError(f"{attr} unavailable")
        return _fail


@pytest.mark.asyncio
async def test_register_inserts_participant_and_join_message(service, storage, clock):
    participant = await service.register("  <b>Alice</b> ")
    assert participant.name == "Alice"

    assert await storage.participants.find() == [{"name": "Alice", "lastStatus": epoch_ms(clock())}]
    assert await storage.messages.find() == [
        {"from": "Alice", "to": "Todos", "text": "entra na sala...", "type": "status", "time": "12:00:00"}
    ]


@pytest.mark.asyncio
async def test_register_same_sanitized_name_twice_conflicts(service, storage):
    await service.register("Alice")
    with pytest.raises(ConflictError):
        await service.register("<i>Alice</i>  ")
    assert len(await storage.participants.find()) == 1
    assert len(await storage.messages.find()) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", ["", "   ", "<b></b>", None])
async def test_register_rejects_empty_names(service, storage, raw):
    with pytest.raises(ValidationError):
        await service.register(raw)
    assert await storage.participants.find() == []


@pytest.mark.asyncio
async def test_register_survives_lost_join_message(clock):
    storage = memory_storage()
    storage.messages = BrokenCollection()
    service = ChatService(storage, now=clock)

    await service.register("Alice")
    assert [p["name"] for p in await storage.participants.find()] == ["Alice"]


@pytest.mark.asyncio
async def test_register_wraps_storage_failures(clock):
    storage = memory_storage()
    storage.participants = BrokenCollection()
    with pytest.raises(StorageError):
        await ChatService(storage, now=clock).register("Alice")


@pytest.mark.asyncio
async def test_refresh_status_extends_deadline(service, storage, clock):
    await service.register("Alice")
    clock.advance(8)
    await service.refresh_status("Alice")
    await service.refresh_status("Alice")
    assert (await storage.participants.find_one({"name": "Alice"}))["lastStatus"] == epoch_ms(clock())


@pytest.mark.asyncio
async def test_refresh_status_unknown_name_mutates_nothing(service, storage):
    await service.register("Alice")
    before_participants = await storage.participants.find()
    before_messages = await storage.messages.find()

    with pytest.raises(NotFoundError):
        await service.refresh_status("Bob")
    with pytest.raises(NotFoundError):
        await service.refresh_status(None)

    assert await storage.participants.find() == before_participants
    assert await storage.messages.find() == before_messages


@pytest.mark.asyncio
async def test_send_message_sanitizes_and_stores(service, storage, clock):
    await service.register("Alice")
    clock.advance(3)
    doc = await service.send_message(
        " Alice ", {"to": "Todos", "text": " <b>oi</b> gente ", "type": "message"}
    )
    assert doc == {"from": "Alice", "to": "Todos", "text": "oi gente", "type": "message", "time": "12:00:03"}
    assert (await storage.messages.find())[-1] == doc


@pytest.mark.asyncio
async def test_send_message_rejects_unknown_sender(service, storage):
    with pytest.raises(ValidationError):
        await service.send_message("Ghost", {"to": "Todos", "text": "oi", "type": "message"})
    assert await storage.messages.find() == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"to": "Todos", "text": "oi", "type": "status"},
        {"to": "Todos", "text": "", "type": "message"},
        {"text": "oi", "type": "message"},
        {"to": "Todos", "text": "<p></p>", "type": "message"},
        ["not", "an", "object"],
    ],
)
async def test_send_message_rejects_invalid_payloads(service, storage, payload):
    await service.register("Alice")
    with pytest.raises(ValidationError):
        await service.send_message("Alice", payload)
    assert len(await storage.messages.find()) == 1


@pytest.mark.asyncio
async def test_get_messages_filters_for_viewer(service):
    await service.register("Alice")
    await service.register("Bob")
    await service.send_message("Alice", {"to": "Bob", "text": "psst", "type": "private_message"})
    await service.send_message("Alice", {"to": "Todos", "text": "hi", "type": "message"})

    carol_view = [m["text"] for m in await service.get_messages("Carol")]
    assert carol_view == ["entra na sala...", "entra na sala...", "hi"]
    bob_view = [m["text"] for m in await service.get_messages("Bob", limit=2)]
    assert bob_view == ["psst", "hi"]


@pytest.mark.asyncio
async def test_list_participants_wraps_storage_failures(clock):
    storage = memory_storage()
    storage.participants = BrokenCollection()
    with pytest.raises(StorageError):
        await ChatService(storage, now=clock).list_participants()
