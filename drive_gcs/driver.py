"""
GCS Drive Driver

Maps the generic Drive file operations onto a BucketBackend. Every
operation catches backend errors at its own boundary and re-raises exactly
one DriveError subclass.
"""
import logging
from typing import BinaryIO, Optional, Union

from drive_gcs.base import (
    BucketBackend,
    CannotCopyFileError,
    CannotDeleteFileError,
    CannotGetMetadataError,
    CannotMoveFileError,
    CannotReadFileError,
    CannotSetVisibilityError,
    CannotWriteFileError,
    ContentHeaders,
    DriveError,
    DriveFileStats,
    MoveResult,
    StorageError,
    Visibility,
    VisibilityLookup,
    WriteOptions
)
from drive_gcs.config import GcsDriverConfig
from drive_gcs.options import (
    Duration,
    expires_at,
    transform_content_headers,
    transform_write_options
)


def _original(error: BaseException) -> BaseException:
    """Unwrap the backend error carried by a nested driver error."""
    if isinstance(error, DriveError) and error.original is not None:
        return error.original
    return error


class GcsDriver:
    """
    Drive driver for a single Google Cloud Storage bucket.

    Usage:
        driver = GcsDriver(GcsDriverConfig(bucket="uploads"))
        driver.put("avatars/1.png", data, WriteOptions(visibility="public"))
        url = driver.get_signed_url("avatars/1.png", expires_in="2h")
    """

    name = "gcs"

    # The ACL entity and role that together mean "public"
    acl_public_entity = "allUsers"
    acl_public_role = "READER"

    def __init__(
        self,
        config: GcsDriverConfig,
        logger: Optional[logging.Logger] = None,
        backend: Optional[BucketBackend] = None
    ):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)

        if backend is None:
            from drive_gcs.gcs_backend import GCSBucketBackend
            backend = GCSBucketBackend(
                config.bucket,
                credentials_path=config.key_filename,
                credentials_info=config.credentials,
                project_id=config.project_id
            )
        self.adapter = backend

    def bucket(self, bucket_name: str) -> "GcsDriver":
        """Return a driver for another bucket sharing this driver's client."""
        return GcsDriver(
            self.config.for_bucket(bucket_name),
            self.logger,
            backend=self.adapter.with_bucket(bucket_name)
        )

    def _write_options(self, options: Optional[WriteOptions]) -> dict:
        return transform_write_options(
            options,
            self.config.visibility,
            self.config.using_uniform_acl,
            log=self.logger
        )

    def get(self, location: str) -> bytes:
        """
        Return the file contents as bytes. Decoding is left to the caller.
        """
        try:
            return self.adapter.download(location)
        except StorageError as e:
            raise CannotReadFileError(location, e) from e

    def get_stream(self, location: str) -> BinaryIO:
        """
        Return a lazy binary reader for the file.

        Nothing is fetched until the first read. A missing object therefore
        surfaces as a StorageError raised by ``read()``, unlike ``get`` which
        fails immediately.
        """
        return self.adapter.open_read_stream(location)

    def exists(self, location: str) -> bool:
        try:
            return self.adapter.exists(location)
        except StorageError as e:
            raise CannotGetMetadataError(location, "exists", e) from e

    def inspect_visibility(self, location: str) -> VisibilityLookup:
        """
        Inspect the object's ACL for a public read grant.

        The object is fetched first so that a missing file is reported
        instead of being mistaken for a private one. ACL read failures
        (uniform buckets, missing permission) yield an unknown lookup.
        """
        try:
            self.adapter.get_metadata(location)
        except StorageError as e:
            raise CannotGetMetadataError(location, "visibility", e) from e

        try:
            entries = self.adapter.get_acl(location, self.acl_public_entity)
        except StorageError as e:
            return VisibilityLookup.unknown(e)

        is_public = any(
            entry.get("entity") == self.acl_public_entity and entry.get("role") == self.acl_public_role
            for entry in entries
        )
        return VisibilityLookup.public() if is_public else VisibilityLookup.private()

    def get_visibility(self, location: str) -> Visibility:
        lookup = self.inspect_visibility(location)
        if lookup.is_unknown:
            self.logger.warning(
                "Could not read ACL for %s, treating it as private: %s", location, lookup.cause
            )
        return lookup.resolve(Visibility.PRIVATE)

    def get_stats(self, location: str) -> DriveFileStats:
        try:
            metadata = self.adapter.get_metadata(location)
        except StorageError as e:
            raise CannotGetMetadataError(location, "stats", e) from e

        return DriveFileStats(
            modified=metadata.updated,
            size=metadata.size,
            etag=metadata.etag,
            is_file=True
        )

    def get_signed_url(
        self,
        location: str,
        expires_in: Optional[Duration] = None,
        content_type: Optional[str] = None,
        content_disposition: Optional[str] = None
    ) -> str:
        """
        Return a time limited read URL.

        ``expires_in`` accepts a timedelta, an expression such as "30 mins",
        or a bare number which is read as seconds (not milliseconds); it
        defaults to six days. V4 signing is used because V2
        cannot override the response content type.
        """
        response_headers = transform_content_headers(
            ContentHeaders(content_type=content_type, content_disposition=content_disposition),
            log=self.logger
        )

        try:
            expiry = expires_at(expires_in)
            return self.adapter.generate_signed_url(
                location,
                action="read",
                version="v4",
                expires=expiry,
                response_headers=response_headers
            )
        except (StorageError, ValueError) as e:
            raise CannotGetMetadataError(location, "signed_url", e) from e

    def get_url(self, location: str) -> str:
        """Return the public URL of the file. Existence and access are not checked."""
        return self.adapter.public_url(location)

    def put(
        self,
        location: str,
        contents: Union[bytes, str],
        options: Optional[WriteOptions] = None
    ) -> None:
        """
        Write bytes or text to a location, replacing any existing object.
        """
        try:
            self.adapter.save(location, contents, self._write_options(options))
        except StorageError as e:
            raise CannotWriteFileError(location, e) from e

    def put_stream(
        self,
        location: str,
        contents: BinaryIO,
        options: Optional[WriteOptions] = None
    ) -> None:
        """
        Write a readable binary stream to a location.

        Returns once the stream is exhausted and the object is written.
        Errors from reading the source and from the upload both raise
        CannotWriteFileError.
        """
        try:
            self.adapter.save_stream(location, contents, self._write_options(options))
        except (StorageError, OSError) as e:
            raise CannotWriteFileError(location, e) from e

    def set_visibility(self, location: str, visibility: Union[Visibility, str]) -> None:
        try:
            if Visibility(visibility) is Visibility.PUBLIC:
                self.adapter.make_public(location)
            else:
                self.adapter.make_private(location)
        except StorageError as e:
            raise CannotSetVisibilityError(location, e) from e

    def delete(self, location: str) -> None:
        """Remove a file. Deleting a missing file is not an error."""
        try:
            self.adapter.delete(location, ignore_not_found=True)
        except StorageError as e:
            raise CannotDeleteFileError(location, e) from e

    def copy(self, source: str, destination: str, options: Optional[WriteOptions] = None) -> None:
        """
        Copy a file to another location in the bucket.

        GCS keeps the content type and metadata on copy but not the ACL,
        so for per-object ACL buckets the source visibility is read and
        applied to the copy unless the caller chose one.
        """
        options = options or WriteOptions()

        try:
            if not options.is_set("visibility") and not self.config.using_uniform_acl:
                visibility = self.get_visibility(source)
                options = WriteOptions(**{**options.model_dump(exclude_unset=True), "visibility": visibility})

            self.adapter.copy(source, destination, self._write_options(options))
        except StorageError as e:
            raise CannotCopyFileError(source, destination, _original(e)) from e

    def move(self, source: str, destination: str, options: Optional[WriteOptions] = None) -> MoveResult:
        """
        Move a file by copying it and deleting the source.

        GCS has no rename. The copy is verified before the source is
        deleted. If the delete fails the object exists at both locations;
        the raised error's ``outcome`` is then PARTIAL_COPY_ONLY.
        """
        try:
            self.copy(source, destination, options)
            if not self.exists(destination):
                raise CannotCopyFileError(source, destination)
        except StorageError as e:
            raise CannotMoveFileError(source, destination, _original(e), MoveResult.NOT_MOVED) from e

        try:
            self.delete(source)
        except StorageError as e:
            self.logger.warning(
                "Copied %s to %s but could not delete the source", source, destination
            )
            raise CannotMoveFileError(
                source, destination, _original(e), MoveResult.PARTIAL_COPY_ONLY
            ) from e

        return MoveResult.COMPLETE
