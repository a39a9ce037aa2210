"""
Local Filesystem Bucket Backend

This module implements the BucketBackend capability on the local
filesystem. Object bodies live under ``<base_path>/<bucket>/objects`` and
each object has a JSON sidecar under ``<base_path>/<bucket>/meta`` holding
its content headers, etag and ACL entries.

Perfect for development and tests: it mirrors the GCS semantics the driver
depends on (predefined ACLs, uniform bucket-level access, lazy reads,
signed URLs that expire).
"""
import hashlib
import hmac
import io
import json
import os
import shutil
import tempfile
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Optional, Union
from urllib.parse import parse_qs, unquote, urlencode, urlsplit

from drive_gcs.base import (
    BucketBackend,
    ObjectMetadata,
    StorageError,
    StorageNotFoundError,
    StoragePermissionError
)

PUBLIC_ENTITY = "allUsers"
READER_ROLE = "READER"

_CHUNK_SIZE = 64 * 1024

_PREDEFINED_ACLS = {
    "publicRead": [{"entity": PUBLIC_ENTITY, "role": READER_ROLE}],
    "private": [],
    "projectPrivate": [],
    "bucketOwnerRead": [],
    "bucketOwnerFullControl": [],
    "authenticatedRead": [{"entity": "allAuthenticatedUsers", "role": READER_ROLE}],
}

_CONTENT_FIELDS = ("content_disposition", "content_encoding", "content_language")


class _LazyFileStream(io.RawIOBase):
    """Raw reader that opens the object file on first read."""

    def __init__(self, path: Path, location: str):
        super().__init__()
        self._path = path
        self._location = location
        self._file = None

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        if self._file is None:
            try:
                self._file = open(self._path, "rb")
            except FileNotFoundError as e:
                raise StorageNotFoundError(f"File not found: {self._location}") from e
        return self._file.readinto(buffer)

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
        super().close()


class LocalBucketBackend(BucketBackend):
    """
    Local filesystem bucket capability.

    Features:
    - No external dependencies
    - Atomic object replacement (last writer wins)
    - Per-object ACLs, or uniform bucket-level access when ``uniform_acl``
    - HMAC signed URLs readable through ``open_url``
    """

    def __init__(
        self,
        base_path: str,
        bucket_name: str = "local",
        uniform_acl: bool = False,
        signing_key: str = "drive-gcs-local"
    ):
        """
        Initialize local bucket backend.

        Args:
            base_path: Base directory for all buckets (e.g., './.local_storage')
            bucket_name: Bucket directory name under base_path
            uniform_acl: Reject per-object ACL operations like a uniform GCS bucket
            signing_key: Secret used to sign URLs

        Raises:
            StorageError: If the bucket directories cannot be created
        """
        self.base_path = Path(base_path).resolve()
        self.bucket_name = bucket_name
        self.uniform_acl = uniform_acl
        self.signing_key = signing_key
        self._lock = threading.Lock()

        self.objects_root = self.base_path / bucket_name / "objects"
        self.meta_root = self.base_path / bucket_name / "meta"

        try:
            self.objects_root.mkdir(parents=True, exist_ok=True)
            self.meta_root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to create local storage directory: {e}") from e

    def _object_path(self, location: str) -> Path:
        """
        Convert a location to its object path.

        Raises:
            StorageError: If the location resolves outside the bucket
        """
        full_path = self.objects_root / location.lstrip("/")

        try:
            full_path.resolve().relative_to(self.objects_root)
        except ValueError:
            raise StorageError(f"Invalid path: {location} resolves outside bucket directory")

        return full_path

    def _meta_path(self, location: str) -> Path:
        return self.meta_root / (location.lstrip("/") + ".json")

    def _read_meta(self, location: str) -> Dict[str, Any]:
        path = self._object_path(location)
        if not path.is_file():
            raise StorageNotFoundError(f"File not found: {location}")
        try:
            return json.loads(self._meta_path(location).read_text(encoding="utf-8"))
        except FileNotFoundError:
            # Object written without a sidecar (e.g. copied in by hand)
            stat = path.stat()
            return {
                "acl": [],
                "content_type": None,
                "metadata": {},
                "updated": datetime.fromtimestamp(stat.st_mtime, timezone.utc).isoformat(),
                "size": stat.st_size,
                "etag": None,
            }

    def _write_meta(self, location: str, meta: Dict[str, Any]) -> None:
        path = self._meta_path(location)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(meta), encoding="utf-8")

    def _acl_for(self, options: Dict[str, Any]) -> List[Dict[str, str]]:
        predefined = options.get("predefined_acl")
        if predefined is None:
            return []
        if self.uniform_acl:
            raise StorageError(
                "Cannot insert legacy ACL for an object when uniform bucket-level access is enabled"
            )
        if predefined not in _PREDEFINED_ACLS:
            raise StorageError(f"Invalid predefined ACL: {predefined}")
        return [dict(entry) for entry in _PREDEFINED_ACLS[predefined]]

    def _ensure_object_acl(self, location: str) -> None:
        if self.uniform_acl:
            raise StoragePermissionError(
                f"Object ACLs are disabled for uniform bucket {self.bucket_name}: {location}"
            )

    def _commit(self, location: str, temp_path: Path, options: Dict[str, Any], base_meta: Optional[Dict[str, Any]] = None) -> None:
        """Move a fully written temp file into place along with its sidecar."""
        meta = dict(base_meta or {"content_type": None, "metadata": {}})
        meta["acl"] = self._acl_for(options)

        if options.get("content_type"):
            meta["content_type"] = options["content_type"]
        for name, value in (options.get("metadata") or {}).items():
            if value:
                meta[name] = value
        if options.get("custom_metadata"):
            meta["metadata"] = dict(options["custom_metadata"])

        digest = hashlib.md5()
        with open(temp_path, "rb") as f:
            for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
                digest.update(chunk)
        meta["etag"] = digest.hexdigest()
        meta["size"] = temp_path.stat().st_size
        meta["updated"] = datetime.now(timezone.utc).isoformat()

        target = self._object_path(location)
        with self._lock:
            os.replace(temp_path, target)
            self._write_meta(location, meta)

    def _temp_file(self, location: str):
        target = self._object_path(location)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, name = tempfile.mkstemp(dir=target.parent, prefix=".upload-")
        except OSError as e:
            raise StorageError(f"Failed to prepare upload for {location}: {e}") from e
        return os.fdopen(fd, "wb"), Path(name)

    def download(self, location: str) -> bytes:
        path = self._object_path(location)
        if not path.is_file():
            raise StorageNotFoundError(f"File not found: {location}")
        try:
            return path.read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to read file {location}: {e}") from e

    def open_read_stream(self, location: str) -> BinaryIO:
        return io.BufferedReader(_LazyFileStream(self._object_path(location), location))

    def exists(self, location: str) -> bool:
        return self._object_path(location).is_file()

    def get_metadata(self, location: str) -> ObjectMetadata:
        meta = self._read_meta(location)
        return ObjectMetadata(
            updated=datetime.fromisoformat(meta["updated"]),
            size=int(meta["size"]),
            etag=meta.get("etag"),
            content_type=meta.get("content_type"),
            content_disposition=meta.get("content_disposition"),
            content_encoding=meta.get("content_encoding"),
            content_language=meta.get("content_language"),
            metadata=dict(meta.get("metadata") or {})
        )

    def get_acl(self, location: str, entity: str) -> List[Dict[str, str]]:
        self._ensure_object_acl(location)
        meta = self._read_meta(location)
        return [entry for entry in meta.get("acl", []) if entry["entity"] == entity]

    def _signature(self, location: str, expires: int, response_headers: Dict[str, str]) -> str:
        payload = "\n".join([self.bucket_name, location, str(expires)] + sorted(
            f"{name}={value}" for name, value in response_headers.items()
        ))
        return hmac.new(self.signing_key.encode(), payload.encode(), hashlib.sha256).hexdigest()

    def generate_signed_url(
        self,
        location: str,
        *,
        action: str,
        version: str,
        expires: datetime,
        response_headers: Optional[Dict[str, str]] = None
    ) -> str:
        if action != "read":
            raise StorageError(f"Unsupported signed URL action: {action}")
        response_headers = dict(response_headers or {})
        timestamp = int(expires.timestamp())
        query = {
            "X-Goog-Version": version,
            "X-Goog-Expires": timestamp,
            **response_headers,
            "X-Goog-Signature": self._signature(location, timestamp, response_headers),
        }
        return f"{self.public_url(location)}?{urlencode(query)}"

    def public_url(self, location: str) -> str:
        return self._object_path(location).as_uri()

    def open_url(self, url: str, now: Optional[datetime] = None) -> bytes:
        """
        Fetch an object through a URL produced by this backend.

        Unsigned URLs are only readable for public objects; signed URLs
        must carry a valid, unexpired signature.

        Raises:
            StoragePermissionError: If access is denied
            StorageNotFoundError: If the object does not exist
        """
        parts = urlsplit(url)
        path = Path(unquote(parts.path)).resolve()
        try:
            location = path.relative_to(self.objects_root).as_posix()
        except ValueError:
            raise StorageNotFoundError(f"URL does not belong to bucket {self.bucket_name}: {url}")

        query = {name: values[0] for name, values in parse_qs(parts.query).items()}
        signature = query.pop("X-Goog-Signature", None)

        if signature is None:
            if self.uniform_acl or not self.get_acl(location, PUBLIC_ENTITY):
                raise StoragePermissionError(f"Anonymous access denied: {location}")
            return self.download(location)

        expires = int(query.pop("X-Goog-Expires", "0"))
        query.pop("X-Goog-Version", None)
        expected = self._signature(location, expires, query)
        if not hmac.compare_digest(signature, expected):
            raise StoragePermissionError(f"Invalid signature for {location}")
        if (now or datetime.now(timezone.utc)).timestamp() > expires:
            raise StoragePermissionError(f"Signed URL expired for {location}")
        return self.download(location)

    def save(self, location: str, data: Union[bytes, str], options: Dict[str, Any]) -> None:
        if isinstance(data, str):
            data = data.encode("utf-8")
        self.save_stream(location, io.BytesIO(data), options)

    def save_stream(self, location: str, stream: BinaryIO, options: Dict[str, Any]) -> None:
        handle, temp_path = self._temp_file(location)
        try:
            with handle:
                shutil.copyfileobj(stream, handle, _CHUNK_SIZE)
            self._commit(location, temp_path, options)
        except StorageError:
            temp_path.unlink(missing_ok=True)
            raise
        except Exception as e:
            temp_path.unlink(missing_ok=True)
            raise StorageError(f"Failed to upload {location}: {e}") from e

    def _set_acl(self, location: str, acl: List[Dict[str, str]]) -> None:
        self._ensure_object_acl(location)
        with self._lock:
            meta = self._read_meta(location)
            meta["acl"] = acl
            self._write_meta(location, meta)

    def make_public(self, location: str) -> None:
        self._set_acl(location, [{"entity": PUBLIC_ENTITY, "role": READER_ROLE}])

    def make_private(self, location: str) -> None:
        self._set_acl(location, [])

    def delete(self, location: str, *, ignore_not_found: bool = False) -> None:
        path = self._object_path(location)
        with self._lock:
            if not path.is_file():
                if ignore_not_found:
                    return
                raise StorageNotFoundError(f"File not found: {location}")
            try:
                path.unlink()
                self._meta_path(location).unlink(missing_ok=True)
            except OSError as e:
                raise StorageError(f"Failed to delete file {location}: {e}") from e

    def copy(self, source: str, destination: str, options: Dict[str, Any]) -> None:
        source_meta = self._read_meta(source)
        base_meta = {
            name: source_meta.get(name)
            for name in ("content_type", "metadata") + _CONTENT_FIELDS
        }

        handle, temp_path = self._temp_file(destination)
        try:
            with handle, open(self._object_path(source), "rb") as src:
                shutil.copyfileobj(src, handle, _CHUNK_SIZE)
            self._commit(destination, temp_path, options, base_meta)
        except FileNotFoundError as e:
            temp_path.unlink(missing_ok=True)
            raise StorageNotFoundError(f"File not found: {source}") from e
        except StorageError:
            temp_path.unlink(missing_ok=True)
            raise
        except OSError as e:
            temp_path.unlink(missing_ok=True)
            raise StorageError(f"Failed to copy {source} to {destination}: {e}") from e

    def with_bucket(self, bucket_name: str) -> "LocalBucketBackend":
        return LocalBucketBackend(
            str(self.base_path),
            bucket_name,
            uniform_acl=self.uniform_acl,
            signing_key=self.signing_key
        )

    def get_backend_type(self) -> str:
        """Get backend type identifier."""
        return "local"

    def health_check(self) -> bool:
        """Perform health check on local storage."""
        try:
            if not self.objects_root.exists():
                return False

            # Try to create a test file
            test_file = self.base_path / ".health_check"
            test_file.touch()
            test_file.unlink()

            return True
        except OSError:
            return False
