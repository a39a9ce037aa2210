"""
Abstract Bucket Interface and Data Model for drive-gcs

This module defines the backend capability interface the driver talks to,
the value types passed through the Drive contract, and the exception
hierarchy shared by backends and the driver.

Design Pattern: Strategy Pattern (capability) + Adapter (driver)
"""
import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, BinaryIO, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict


class Visibility(str, enum.Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class WriteOptions(BaseModel):
    """
    Per-call write overrides.

    Unknown keyword arguments are kept as passthrough options and handed
    to the backend untouched. Use ``is_set`` to find out whether a field
    was given by the caller rather than left at its default.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    visibility: Optional[Visibility] = None
    content_type: Optional[str] = None
    content_disposition: Optional[str] = None
    content_encoding: Optional[str] = None
    content_language: Optional[str] = None

    def is_set(self, name: str) -> bool:
        return name in self.model_fields_set and getattr(self, name) is not None

    @property
    def passthrough(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})


class ContentHeaders(BaseModel):
    model_config = ConfigDict(frozen=True)

    content_type: Optional[str] = None
    content_disposition: Optional[str] = None


@dataclass(frozen=True)
class DriveFileStats:
    modified: datetime
    size: int
    etag: Optional[str]
    is_file: bool = True


@dataclass(frozen=True)
class ObjectMetadata:
    """Object metadata as reported by a bucket backend."""

    updated: datetime
    size: int
    etag: Optional[str]
    content_type: Optional[str] = None
    content_disposition: Optional[str] = None
    content_encoding: Optional[str] = None
    content_language: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class VisibilityLookup:
    """
    Outcome of inspecting an object's ACL.

    ``visibility`` is None when the ACL could not be read; ``cause`` then
    holds the error. Callers choose how an unknown result degrades.
    """

    visibility: Optional[Visibility]
    cause: Optional[BaseException] = None

    @classmethod
    def public(cls) -> "VisibilityLookup":
        return cls(Visibility.PUBLIC)

    @classmethod
    def private(cls) -> "VisibilityLookup":
        return cls(Visibility.PRIVATE)

    @classmethod
    def unknown(cls, cause: BaseException) -> "VisibilityLookup":
        return cls(None, cause)

    @property
    def is_unknown(self) -> bool:
        return self.visibility is None

    def resolve(self, default: Visibility = Visibility.PRIVATE) -> Visibility:
        return default if self.visibility is None else self.visibility


class MoveResult(str, enum.Enum):
    COMPLETE = "complete"
    PARTIAL_COPY_ONLY = "partial_copy_only"
    NOT_MOVED = "not_moved"


class BucketBackend(ABC):
    """
    Abstract capability over a single object-storage bucket.

    Implementations (GCS, local filesystem) translate their native errors
    into the StorageError family defined below. Backend options are the
    dicts produced by ``drive_gcs.options.transform_write_options``.
    """

    bucket_name: str

    @abstractmethod
    def download(self, location: str) -> bytes:
        """
        Download the full object body.

        Raises:
            StorageNotFoundError: If the object does not exist
            StorageError: On any other failure
        """
        pass

    @abstractmethod
    def open_read_stream(self, location: str) -> BinaryIO:
        """
        Open a lazy reader over the object.

        No request is made until the first read, so a missing object is
        reported by ``read()`` rather than by this call.
        """
        pass

    @abstractmethod
    def exists(self, location: str) -> bool:
        pass

    @abstractmethod
    def get_metadata(self, location: str) -> ObjectMetadata:
        """
        Fetch object metadata.

        Raises:
            StorageNotFoundError: If the object does not exist
        """
        pass

    @abstractmethod
    def get_acl(self, location: str, entity: str) -> List[Dict[str, str]]:
        """
        Return the ACL entries of an object for the given entity.

        Each entry is a dict with ``entity`` and ``role`` keys.
        """
        pass

    @abstractmethod
    def generate_signed_url(
        self,
        location: str,
        *,
        action: str,
        version: str,
        expires: datetime,
        response_headers: Optional[Dict[str, str]] = None
    ) -> str:
        pass

    @abstractmethod
    def public_url(self, location: str) -> str:
        pass

    @abstractmethod
    def save(self, location: str, data: Union[bytes, str], options: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    def save_stream(self, location: str, stream: BinaryIO, options: Dict[str, Any]) -> None:
        """
        Upload everything readable from ``stream``.

        Returns only once the stream is exhausted and the object has been
        written; an error on either side aborts the upload.
        """
        pass

    @abstractmethod
    def make_public(self, location: str) -> None:
        pass

    @abstractmethod
    def make_private(self, location: str) -> None:
        pass

    @abstractmethod
    def delete(self, location: str, *, ignore_not_found: bool = False) -> None:
        pass

    @abstractmethod
    def copy(self, source: str, destination: str, options: Dict[str, Any]) -> None:
        """
        Server-side copy within the bucket.

        Content type and custom metadata follow the source object unless
        ``options`` overrides them; a ``predefined_acl`` option is applied
        to the new object.

        Raises:
            StorageNotFoundError: If the source does not exist
        """
        pass

    @abstractmethod
    def with_bucket(self, bucket_name: str) -> "BucketBackend":
        """Return a backend bound to another bucket, sharing credentials."""
        pass

    @abstractmethod
    def get_backend_type(self) -> str:
        pass

    @abstractmethod
    def health_check(self) -> bool:
        pass


class StorageError(Exception):
    """Base exception for all storage-related errors."""
    pass


class StorageConnectionError(StorageError):
    """Exception raised when connection to storage backend fails."""
    pass


class StorageNotFoundError(StorageError):
    """Exception raised when requested file/object is not found."""
    pass


class StoragePermissionError(StorageError):
    """Exception raised when operation is not permitted due to access control."""
    pass


class StorageQuotaExceededError(StorageError):
    """Exception raised when storage quota or rate limit is exceeded."""
    pass


class DriveError(StorageError):
    """
    Base exception raised by the driver.

    ``original`` is the backend error that caused the failure.
    """

    code = "E_DRIVE"

    def __init__(self, message: str, location: str, original: Optional[BaseException] = None):
        super().__init__(message)
        self.location = location
        self.original = original


class CannotReadFileError(DriveError):
    code = "E_CANNOT_READ_FILE"

    def __init__(self, location: str, original: Optional[BaseException] = None):
        super().__init__(f'Cannot read file from location "{location}"', location, original)


class CannotWriteFileError(DriveError):
    code = "E_CANNOT_WRITE_FILE"

    def __init__(self, location: str, original: Optional[BaseException] = None):
        super().__init__(f'Cannot write file at location "{location}"', location, original)


class CannotDeleteFileError(DriveError):
    code = "E_CANNOT_DELETE_FILE"

    def __init__(self, location: str, original: Optional[BaseException] = None):
        super().__init__(f'Cannot delete file at location "{location}"', location, original)


class CannotCopyFileError(DriveError):
    code = "E_CANNOT_COPY_FILE"

    def __init__(self, source: str, destination: str, original: Optional[BaseException] = None):
        super().__init__(
            f'Cannot copy file from "{source}" to "{destination}"', source, original
        )
        self.source = source
        self.destination = destination


class CannotMoveFileError(DriveError):
    code = "E_CANNOT_MOVE_FILE"

    def __init__(
        self,
        source: str,
        destination: str,
        original: Optional[BaseException] = None,
        outcome: MoveResult = MoveResult.NOT_MOVED
    ):
        super().__init__(
            f'Cannot move file from "{source}" to "{destination}"', source, original
        )
        self.source = source
        self.destination = destination
        self.outcome = outcome


class CannotGetMetadataError(DriveError):
    code = "E_CANNOT_GET_METADATA"

    KINDS = ("exists", "stats", "visibility", "signed_url")

    def __init__(self, location: str, kind: str, original: Optional[BaseException] = None):
        if kind not in self.KINDS:
            raise ValueError(f"Unknown metadata kind: {kind}")
        super().__init__(
            f'Unable to retrieve the "{kind}" for file at location "{location}"',
            location,
            original
        )
        self.kind = kind


class CannotSetVisibilityError(DriveError):
    code = "E_CANNOT_SET_VISIBILITY"

    def __init__(self, location: str, original: Optional[BaseException] = None):
        super().__init__(f'Unable to set visibility for file at location "{location}"', location, original)
