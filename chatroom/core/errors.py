from __future__ import annotations


class ChatError(Exception):
    """Base class for failures raised by chat operations."""

    status_code: int = 500


class ValidationError(ChatError):
    """Malformed payload, missing field or unknown sender."""

    status_code = 422


class ConflictError(ChatError):
    """Participant name already taken."""

    status_code = 409


class NotFoundError(ChatError):
    status_code = 404


class StorageError(ChatError):
    """Any failure talking to the storage collections."""

    status_code = 500
