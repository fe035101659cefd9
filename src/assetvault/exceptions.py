"""Domain level exceptions and helpers for repository layers."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterable, Iterator, Sequence

from sqlalchemy import exc as sa_exc

__all__ = [
    "AssetError",
    "ValidationError",
    "FileTooLargeError",
    "ExtensionNotAllowedError",
    "MimeTypeNotAllowedError",
    "FileNameNotAllowedError",
    "AccessDeniedError",
    "StorageIOError",
    "PersistenceError",
    "StagingError",
    "CorruptPendingMetadataError",
    "PendingIdExhaustedError",
    "QueueError",
    "VariantProcessingError",
    "RepositoryError",
    "NotFoundError",
    "IntegrityConstraintViolation",
    "DatabaseOperationError",
    "handle_sqlalchemy_errors",
]


class AssetError(Exception):
    """Base class for application specific errors."""

    status_code: int = 500
    code: str = "asset_error"


class ValidationError(AssetError):
    """Raised when an asset violates its collection policy."""

    status_code = 400
    code = "validation_error"


class FileTooLargeError(ValidationError):
    status_code = 413
    code = "file_too_large"

    def __init__(self, size: int, max_size: int) -> None:
        super().__init__(f"file size {size} bytes exceeds the maximum of {max_size} bytes")
        self.size = size
        self.max_size = max_size


class ExtensionNotAllowedError(ValidationError):
    code = "invalid_file_extension"

    def __init__(self, extension: str, allowed: Iterable[str]) -> None:
        self.extension = extension
        self.allowed = tuple(allowed)
        super().__init__(
            f"file extension '{extension}' is not allowed, allowed: {', '.join(self.allowed)}"
        )


class MimeTypeNotAllowedError(ValidationError):
    status_code = 415
    code = "invalid_mime_type"

    def __init__(self, mime_type: str, allowed: Iterable[str]) -> None:
        self.mime_type = mime_type
        self.allowed = tuple(allowed)
        super().__init__(
            f"MIME type '{mime_type}' is not allowed, allowed: {', '.join(self.allowed)}"
        )


class FileNameNotAllowedError(ValidationError):
    code = "file_name_not_allowed"

    def __init__(self, file_name: str) -> None:
        super().__init__(f"file name '{file_name}' is not allowed")
        self.file_name = file_name


class AccessDeniedError(AssetError):
    """Raised when an asset may not be served to the caller."""

    status_code = 403
    code = "forbidden"


class StorageIOError(AssetError):
    """Raised when a file or directory cannot be read, written, moved or copied."""

    code = "storage_error"


class PersistenceError(AssetError):
    """Raised when the record store rejects an asset."""

    code = "database_error"

    def __init__(self, errors: Sequence[str] | str) -> None:
        self.errors: tuple[str, ...] = (errors,) if isinstance(errors, str) else tuple(errors)
        super().__init__(f"asset record could not be saved: {', '.join(self.errors)}")


class StagingError(AssetError):
    """Raised when the pending staging area cannot be read or written."""

    code = "staging_error"


class CorruptPendingMetadataError(StagingError):
    """Raised when a pending metadata document cannot be parsed."""

    code = "corrupt_pending_metadata"

    def __init__(self, pending_id: str) -> None:
        super().__init__(f"unable to read metadata of pending asset '{pending_id}'")
        self.pending_id = pending_id


class PendingIdExhaustedError(StagingError):
    code = "pending_id_exhausted"


class QueueError(AssetError):
    """Raised when deferred variant processing cannot be enqueued."""

    code = "queue_error"


class VariantProcessingError(AssetError):
    """Raised when a variant callback fails or produces no file."""

    code = "variant_error"


class RepositoryError(AssetError):
    """Base class for persistence layer failures."""


class NotFoundError(RepositoryError):
    """Raised when a record could not be located."""

    status_code = 404
    code = "not_found"


class IntegrityConstraintViolation(RepositoryError):
    """Raised when a database constraint is violated."""


class DatabaseOperationError(RepositoryError):
    """Raised for unexpected database errors."""


@dataclass(slots=True)
class _EntityContext:
    """Internal helper describing the entity for error messages."""

    entity: str | None = None

    def format(self, message: str) -> str:
        if self.entity:
            return f"{self.entity}: {message}"
        return message


def _translate_sqlalchemy_error(exc: Exception, *, context: _EntityContext) -> RepositoryError:
    if isinstance(exc, sa_exc.IntegrityError):
        return IntegrityConstraintViolation(context.format("integrity constraint violated"))
    if isinstance(exc, sa_exc.DBAPIError):
        return DatabaseOperationError(context.format("database operation failed"))
    return RepositoryError(context.format(str(exc)))


@contextmanager
def handle_sqlalchemy_errors(*, entity: str | None = None) -> Iterator[None]:
    """Translate SQLAlchemy errors into domain specific ones."""

    context = _EntityContext(entity)
    try:
        yield
    except (sa_exc.IntegrityError, sa_exc.DBAPIError) as exc:
        raise _translate_sqlalchemy_error(exc, context=context) from exc
