"""
Google Cloud Storage (GCS) Bucket Backend

This module implements the BucketBackend capability on top of the
google-cloud-storage client. Supports service account key files, inline
service account credentials and application default credentials.
"""
import io
import logging
import os
from contextlib import contextmanager
from datetime import datetime
from typing import Any, BinaryIO, Dict, Iterator, List, Optional, Union

from google.api_core import exceptions as gcs_exceptions
from google.auth.exceptions import DefaultCredentialsError
from google.cloud import storage
from google.oauth2 import service_account

from drive_gcs.base import (
    BucketBackend,
    ObjectMetadata,
    StorageError,
    StorageConnectionError,
    StorageNotFoundError,
    StoragePermissionError,
    StorageQuotaExceededError
)

logger = logging.getLogger(__name__)

# Blob properties that may be passed through write options untouched
_PASSTHROUGH_PROPERTIES = ("cache_control", "custom_time", "storage_class")


@contextmanager
def _gcs_errors(action: str, location: str) -> Iterator[None]:
    """Translate google-cloud errors into the StorageError family."""
    try:
        yield
    except StorageError:
        raise
    except gcs_exceptions.NotFound as e:
        raise StorageNotFoundError(f"File not found in GCS: {location}") from e
    except (gcs_exceptions.Forbidden, gcs_exceptions.Unauthorized) as e:
        raise StoragePermissionError(f"Not allowed to {action} {location} in GCS: {e}") from e
    except gcs_exceptions.TooManyRequests as e:
        raise StorageQuotaExceededError(f"Rate limited while trying to {action} {location}: {e}") from e
    except Exception as e:
        raise StorageError(f"Failed to {action} {location} in GCS: {e}") from e


class _BlobStream(io.RawIOBase):
    """
    Raw reader over a blob that opens the download on first read.

    Errors raised while reading are translated like every other call.
    """

    def __init__(self, blob: storage.Blob):
        super().__init__()
        self._blob = blob
        self._reader = None

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        with _gcs_errors("read", self._blob.name):
            if self._reader is None:
                self._reader = self._blob.open("rb")
            data = self._reader.read(len(buffer))
        size = len(data)
        buffer[:size] = data
        return size

    def close(self) -> None:
        if self._reader is not None:
            self._reader.close()
            self._reader = None
        super().close()


class GCSBucketBackend(BucketBackend):
    """
    Google Cloud Storage bucket capability.

    Features:
    - Credential detection (key file, inline credentials, default, env var)
    - Translation of API errors into StorageError subclasses
    - Cheap bucket switching that reuses the authenticated client
    """

    def __init__(
        self,
        bucket_name: str,
        client: Optional[storage.Client] = None,
        credentials_path: Optional[str] = None,
        credentials_info: Optional[Dict[str, Any]] = None,
        project_id: Optional[str] = None
    ):
        """
        Initialize GCS bucket backend.

        Args:
            bucket_name: Name of the GCS bucket
            client: Already authenticated client to reuse
            credentials_path: Optional path to service account JSON file
            credentials_info: Optional service account JSON as a dict
            project_id: Optional GCP project ID

        Raises:
            StorageConnectionError: If no client can be created
        """
        if not bucket_name:
            raise StorageConnectionError("GCS bucket name is required")

        self.bucket_name = bucket_name
        self.client = client or self._initialize_client(credentials_path, credentials_info, project_id)
        self.bucket = self.client.bucket(bucket_name)

    @staticmethod
    def _initialize_client(
        credentials_path: Optional[str],
        credentials_info: Optional[Dict[str, Any]],
        project_id: Optional[str]
    ) -> storage.Client:
        """Create a GCS client with the first credentials that work."""
        credentials_env = os.getenv("GOOGLE_APPLICATION_CREDENTIALS")

        try:
            if credentials_path:
                logger.info("Using GCS credentials file: %s", credentials_path)
                credentials = service_account.Credentials.from_service_account_file(credentials_path)
                return storage.Client(credentials=credentials, project=project_id or credentials.project_id)

            if credentials_info:
                logger.info("Using inline GCS service account credentials")
                credentials = service_account.Credentials.from_service_account_info(credentials_info)
                return storage.Client(credentials=credentials, project=project_id or credentials.project_id)

            logger.info("Using default application credentials for GCS")
            return storage.Client(project=project_id)

        except DefaultCredentialsError as default_error:
            if credentials_env and os.path.exists(credentials_env):
                logger.warning("Default credentials failed, trying GOOGLE_APPLICATION_CREDENTIALS: %s", credentials_env)
                try:
                    credentials = service_account.Credentials.from_service_account_file(credentials_env)
                    return storage.Client(credentials=credentials, project=project_id or credentials.project_id)
                except (OSError, ValueError) as env_error:
                    raise StorageConnectionError(
                        f"Could not authenticate to GCS with {credentials_env}: {env_error}"
                    ) from env_error

            raise StorageConnectionError(
                f"Could not authenticate to GCS: {default_error}"
            ) from default_error

        except (OSError, ValueError) as e:
            raise StorageConnectionError(f"Invalid GCS credentials: {e}") from e

    @staticmethod
    def _blob_properties(options: Dict[str, Any]) -> Dict[str, Any]:
        """Blob properties requested by transformed write options."""
        metadata = options.get("metadata") or {}
        properties = {}

        if options.get("content_type"):
            properties["content_type"] = options["content_type"]
        for name in ("content_disposition", "content_encoding", "content_language"):
            if metadata.get(name):
                properties[name] = metadata[name]

        if options.get("custom_metadata"):
            properties["metadata"] = options["custom_metadata"]
        for name in _PASSTHROUGH_PROPERTIES:
            if options.get(name) is not None:
                properties[name] = options[name]

        return properties

    def _blob_for_write(self, location: str, options: Dict[str, Any]) -> storage.Blob:
        blob = self.bucket.blob(location)
        for name, value in self._blob_properties(options).items():
            setattr(blob, name, value)
        return blob

    @staticmethod
    def _remaining_size(stream: BinaryIO) -> Optional[int]:
        """Bytes left in a seekable stream, or None when it cannot seek."""
        try:
            if not stream.seekable():
                return None
            position = stream.tell()
            end = stream.seek(0, io.SEEK_END)
            stream.seek(position)
        except (AttributeError, OSError):
            return None
        return end - position

    def download(self, location: str) -> bytes:
        with _gcs_errors("download", location):
            return self.bucket.blob(location).download_as_bytes()

    def open_read_stream(self, location: str) -> BinaryIO:
        return io.BufferedReader(_BlobStream(self.bucket.blob(location)))

    def exists(self, location: str) -> bool:
        with _gcs_errors("check", location):
            return self.bucket.blob(location).exists()

    def get_metadata(self, location: str) -> ObjectMetadata:
        with _gcs_errors("read metadata of", location):
            blob = self.bucket.blob(location)
            blob.reload()

        return ObjectMetadata(
            updated=blob.updated,
            size=int(blob.size or 0),
            etag=blob.etag,
            content_type=blob.content_type,
            content_disposition=blob.content_disposition,
            content_encoding=blob.content_encoding,
            content_language=blob.content_language,
            metadata=dict(blob.metadata or {})
        )

    def get_acl(self, location: str, entity: str) -> List[Dict[str, str]]:
        with _gcs_errors("read ACL of", location):
            acl = self.bucket.blob(location).acl
            acl.reload()
            return [entry for entry in acl if entry["entity"] == entity]

    def generate_signed_url(
        self,
        location: str,
        *,
        action: str,
        version: str,
        expires: datetime,
        response_headers: Optional[Dict[str, str]] = None
    ) -> str:
        methods = {"read": "GET", "write": "PUT", "delete": "DELETE"}
        with _gcs_errors("sign URL for", location):
            return self.bucket.blob(location).generate_signed_url(
                version=version,
                expiration=expires,
                method=methods[action],
                **(response_headers or {})
            )

    def public_url(self, location: str) -> str:
        return self.bucket.blob(location).public_url

    def save(self, location: str, data: Union[bytes, str], options: Dict[str, Any]) -> None:
        with _gcs_errors("upload", location):
            blob = self._blob_for_write(location, options)
            blob.upload_from_string(
                data,
                content_type=options.get("content_type"),
                predefined_acl=options.get("predefined_acl")
            )

    def save_stream(self, location: str, stream: BinaryIO, options: Dict[str, Any]) -> None:
        """
        Upload a binary stream.

        Seekable streams are sent with their size so small objects go out
        in a single multipart request. Without a size the client falls
        back to a resumable session.
        """
        with _gcs_errors("upload", location):
            blob = self._blob_for_write(location, options)
            blob.upload_from_file(
                stream,
                size=self._remaining_size(stream),
                rewind=False,
                content_type=options.get("content_type"),
                predefined_acl=options.get("predefined_acl")
            )

    def make_public(self, location: str) -> None:
        with _gcs_errors("make public", location):
            self.bucket.blob(location).make_public()

    def make_private(self, location: str) -> None:
        with _gcs_errors("make private", location):
            self.bucket.blob(location).make_private()

    def delete(self, location: str, *, ignore_not_found: bool = False) -> None:
        try:
            with _gcs_errors("delete", location):
                self.bucket.blob(location).delete()
        except StorageNotFoundError:
            if not ignore_not_found:
                raise

    def copy(self, source: str, destination: str, options: Dict[str, Any]) -> None:
        """
        Copy an object within the bucket.

        The JSON API copy call keeps content type and custom metadata. The
        predefined ACL and any explicit overrides (content headers and
        passthrough properties) are applied to the new object afterwards.
        """
        with _gcs_errors("copy", source):
            new_blob = self.bucket.copy_blob(self.bucket.blob(source), self.bucket, destination)

        overrides = self._blob_properties(options)

        with _gcs_errors("update copied", destination):
            if overrides:
                for name, value in overrides.items():
                    setattr(new_blob, name, value)
                new_blob.patch()
            if options.get("predefined_acl"):
                new_blob.acl.save_predefined(options["predefined_acl"])

    def with_bucket(self, bucket_name: str) -> "GCSBucketBackend":
        return GCSBucketBackend(bucket_name, client=self.client)

    def get_backend_type(self) -> str:
        """Get backend type identifier."""
        return "gcs"

    def health_check(self) -> bool:
        """Perform health check on GCS connection."""
        try:
            # Try to list one object as a lightweight check
            list(self.client.list_blobs(self.bucket_name, max_results=1))
            return True
        except Exception as e:
            logger.error("GCS health check failed: %s", e)
            return False
