from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Literal, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, StrictStr
from pydantic import ValidationError as PydanticValidationError


BROADCAST = "Todos"
JOIN_TEXT = "entra na sala..."
LEAVE_TEXT = "sai da sala..."

MessageType = Literal["message", "private_message", "status"]
ClientMessageType = Literal["message", "private_message"]


class Participant(BaseModel):
    name: str
    lastStatus: int = Field(..., description="Last activity, epoch milliseconds")


class Message(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(..., alias="from")
    to: str
    text: str
    type: MessageType
    time: str = Field(..., description="Local wall-clock time, HH:MM:SS")

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class ParticipantPayload(BaseModel):
    name: StrictStr = Field(..., min_length=1)


class MessagePayload(BaseModel):
    to: StrictStr = Field(..., min_length=1)
    text: StrictStr = Field(..., min_length=1)
    type: ClientMessageType


P = TypeVar("P", bound=BaseModel)


@dataclass(frozen=True)
class Valid(Generic[P]):
    value: P
    ok: Literal[True] = True


@dataclass(frozen=True)
class Invalid:
    errors: List[Dict[str, Any]] = field(default_factory=list)
    ok: Literal[False] = False

    def describe(self) -> str:
        if not self.errors:
            return "invalid payload"
        return "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}"
            for err in self.errors
        )


ValidationResult = Union[Valid[P], Invalid]


def _validate(model: type, obj: Any) -> ValidationResult:
    if not isinstance(obj, dict):
        return Invalid([{"loc": (), "msg": "payload must be an object"}])
    try:
        return Valid(model.model_validate(obj))
    except PydanticValidationError as exc:
        return Invalid(
            [{"loc": tuple(e["loc"]), "msg": e["msg"]} for e in exc.errors()]
        )


def validate_participant(obj: Any) -> ValidationResult:
    return _validate(ParticipantPayload, obj)


def validate_message(obj: Any) -> ValidationResult:
    """Only client-sendable types pass; status messages never go through here."""
    return _validate(MessagePayload, obj)
