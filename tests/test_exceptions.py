"""Tests for the driver exception hierarchy and result types."""

import pytest

from drive_gcs.base import (
    CannotCopyFileError,
    CannotGetMetadataError,
    CannotMoveFileError,
    CannotReadFileError,
    DriveError,
    MoveResult,
    StorageError,
    StorageNotFoundError,
    Visibility,
    VisibilityLookup
)


def test_driver_errors_are_storage_errors():
    error = CannotReadFileError("foo.txt", StorageNotFoundError("missing"))
    assert isinstance(error, DriveError)
    assert isinstance(error, StorageError)
    assert error.code == "E_CANNOT_READ_FILE"
    assert str(error) == 'Cannot read file from location "foo.txt"'


def test_copy_error_carries_both_locations():
    error = CannotCopyFileError("a.txt", "b.txt")
    assert error.source == "a.txt"
    assert error.destination == "b.txt"
    assert error.location == "a.txt"
    assert error.original is None
    assert "a.txt" in str(error) and "b.txt" in str(error)


def test_move_error_defaults_to_not_moved():
    assert CannotMoveFileError("a.txt", "b.txt").outcome is MoveResult.NOT_MOVED


def test_metadata_error_kind():
    error = CannotGetMetadataError("foo.txt", "stats")
    assert error.kind == "stats"
    assert '"stats"' in str(error)


def test_metadata_error_rejects_unknown_kind():
    with pytest.raises(ValueError):
        CannotGetMetadataError("foo.txt", "size")


def test_visibility_lookup():
    assert VisibilityLookup.public().resolve() is Visibility.PUBLIC
    assert VisibilityLookup.private().resolve(Visibility.PUBLIC) is Visibility.PRIVATE

    unknown = VisibilityLookup.unknown(StorageError("acl disabled"))
    assert unknown.is_unknown
    assert unknown.resolve() is Visibility.PRIVATE
    assert unknown.resolve(Visibility.PUBLIC) is Visibility.PUBLIC
