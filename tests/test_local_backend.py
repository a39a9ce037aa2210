"""Tests for the local filesystem bucket backend."""

import io

import pytest

from drive_gcs.base import StorageError, StorageNotFoundError, StoragePermissionError
from drive_gcs.local_backend import PUBLIC_ENTITY, LocalBucketBackend


@pytest.fixture
def backend(tmp_path):
    return LocalBucketBackend(str(tmp_path), "bucket")


class TestLocalBucketBackend:

    def test_save_and_download(self, backend):
        backend.save("a/b.txt", "hello", {"metadata": {}})
        assert backend.download("a/b.txt") == b"hello"
        assert backend.exists("a/b.txt")

    def test_download_missing(self, backend):
        with pytest.raises(StorageNotFoundError):
            backend.download("missing.txt")

    def test_path_outside_bucket_is_rejected(self, backend):
        with pytest.raises(StorageError):
            backend.save("../../escape.txt", "nope", {"metadata": {}})

    def test_metadata_sidecar(self, backend):
        backend.save("doc.txt", b"hello", {
            "content_type": "text/plain",
            "metadata": {"content_encoding": "identity"},
            "custom_metadata": {"owner": "reports"},
        })
        metadata = backend.get_metadata("doc.txt")

        assert metadata.size == 5
        assert metadata.content_type == "text/plain"
        assert metadata.content_encoding == "identity"
        assert metadata.metadata == {"owner": "reports"}
        assert metadata.etag == "5d41402abc4b2a76b9719d911017c592"

    def test_predefined_acl(self, backend):
        backend.save("pub.txt", "x", {"metadata": {}, "predefined_acl": "publicRead"})
        assert backend.get_acl("pub.txt", PUBLIC_ENTITY) == [{"entity": PUBLIC_ENTITY, "role": "READER"}]

        backend.save("pub.txt", "x", {"metadata": {}, "predefined_acl": "private"})
        assert backend.get_acl("pub.txt", PUBLIC_ENTITY) == []

    def test_invalid_predefined_acl(self, backend):
        with pytest.raises(StorageError):
            backend.save("x.txt", "x", {"metadata": {}, "predefined_acl": "everyone"})

    def test_make_public_and_private(self, backend):
        backend.save("x.txt", "x", {"metadata": {}})
        backend.make_public("x.txt")
        assert backend.get_acl("x.txt", PUBLIC_ENTITY)
        backend.make_private("x.txt")
        assert backend.get_acl("x.txt", PUBLIC_ENTITY) == []

    def test_uniform_bucket_rejects_acl_operations(self, tmp_path):
        backend = LocalBucketBackend(str(tmp_path), "uniform", uniform_acl=True)
        backend.save("x.txt", "x", {"metadata": {}})

        with pytest.raises(StoragePermissionError):
            backend.get_acl("x.txt", PUBLIC_ENTITY)
        with pytest.raises(StoragePermissionError):
            backend.make_public("x.txt")
        with pytest.raises(StorageError):
            backend.save("y.txt", "y", {"metadata": {}, "predefined_acl": "publicRead"})

    def test_delete(self, backend):
        backend.save("x.txt", "x", {"metadata": {}})
        backend.delete("x.txt")
        assert not backend.exists("x.txt")

        with pytest.raises(StorageNotFoundError):
            backend.delete("x.txt")
        backend.delete("x.txt", ignore_not_found=True)

    def test_copy_resets_acl_and_keeps_content_type(self, backend):
        backend.save("src.json", "{}", {
            "content_type": "application/json",
            "metadata": {},
            "predefined_acl": "publicRead",
        })
        backend.copy("src.json", "dst.json", {"metadata": {}})

        assert backend.download("dst.json") == b"{}"
        assert backend.get_metadata("dst.json").content_type == "application/json"
        assert backend.get_acl("dst.json", PUBLIC_ENTITY) == []

    def test_copy_overrides(self, backend):
        backend.save("src.txt", "x", {"content_type": "text/plain", "metadata": {}})
        backend.copy("src.txt", "dst.txt", {
            "content_type": "text/markdown",
            "metadata": {"content_language": "de"},
        })

        metadata = backend.get_metadata("dst.txt")
        assert metadata.content_type == "text/markdown"
        assert metadata.content_language == "de"

    def test_copy_missing_source(self, backend):
        with pytest.raises(StorageNotFoundError):
            backend.copy("missing.txt", "dst.txt", {"metadata": {}})

    def test_read_stream_is_lazy(self, backend):
        stream = backend.open_read_stream("later.txt")
        backend.save("later.txt", "written after open", {"metadata": {}})
        assert stream.read() == b"written after open"
        stream.close()

    def test_save_stream_in_chunks(self, backend):
        data = b"0123456789" * 20000
        backend.save_stream("big.bin", io.BytesIO(data), {"metadata": {}})
        assert backend.download("big.bin") == data
        assert backend.get_metadata("big.bin").size == len(data)

    def test_tampered_signature_is_rejected(self, backend):
        from datetime import datetime, timedelta, timezone

        backend.save("x.txt", "x", {"metadata": {}})
        url = backend.generate_signed_url(
            "x.txt",
            action="read",
            version="v4",
            expires=datetime.now(timezone.utc) + timedelta(hours=1)
        )

        with pytest.raises(StoragePermissionError):
            backend.open_url(url.replace("X-Goog-Signature=", "X-Goog-Signature=0"))

    def test_with_bucket(self, backend):
        other = backend.with_bucket("other")
        assert other.bucket_name == "other"
        assert other.base_path == backend.base_path
        assert other.get_backend_type() == "local"

    def test_health_check(self, backend):
        assert backend.health_check() is True
