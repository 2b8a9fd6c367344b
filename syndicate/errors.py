from fastapi import status


class GameError(Exception):
    """Base class of errors surfaced to the caller of a game operation."""

    code = "internal_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRequest(GameError):
    """A precondition was violated. Nothing was mutated."""

    code = "bad_request"
    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(GameError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ConflictState(GameError):
    """The entity exists but its state forbids the operation."""

    code = "conflict"
    status_code = status.HTTP_409_CONFLICT


class StorageError(GameError):
    code = "internal_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
