from .errors import ChatError, ConflictError, NotFoundError, StorageError, ValidationError
from .sanitize import sanitize
from .schemas import (
    BROADCAST,
    Invalid,
    Message,
    Participant,
    Valid,
    validate_message,
    validate_participant,
)
from .visibility import parse_limit, visible_messages

__all__ = [
    "BROADCAST",
    "ChatError",
    "ConflictError",
    "Invalid",
    "Message",
    "NotFoundError",
    "Participant",
    "StorageError",
    "Valid",
    "ValidationError",
    "parse_limit",
    "sanitize",
    "validate_message",
    "validate_participant",
    "visible_messages",
]
