"""
Google Cloud Storage Driver for Drive

This package lets a Drive-style file storage abstraction read, write and
manage objects in a Google Cloud Storage bucket. The driver translates the
generic file operations into bucket calls, emulating visibility through
object ACLs and move through copy + delete.

Design Patterns Used:
- Adapter Pattern: GcsDriver maps the Drive contract onto a bucket
- Strategy Pattern: GCS and local filesystem backends share one capability interface
- Factory Pattern: DriverFactory builds a driver from configuration

Quick Start:
    from drive_gcs import DriverFactory, GcsDriverConfig, WriteOptions

    driver = DriverFactory.create_driver(GcsDriverConfig(bucket="uploads"))

    driver.put("reports/2024.json", b"{}", WriteOptions(content_type="application/json"))
    data = driver.get("reports/2024.json")
    url = driver.get_signed_url("reports/2024.json", expires_in="1 hour")

Architecture:
    - drive_gcs.base: data model, BucketBackend interface, exceptions
    - drive_gcs.options: write option / content header transformation
    - drive_gcs.driver: the Drive driver
    - drive_gcs.gcs_backend: Google Cloud Storage backend
    - drive_gcs.local_backend: Local filesystem backend
    - drive_gcs.factory: Factory for backends and drivers
    - drive_gcs.config: driver config and environment settings
"""

from drive_gcs.base import (
    BucketBackend,
    ContentHeaders,
    DriveFileStats,
    MoveResult,
    ObjectMetadata,
    Visibility,
    VisibilityLookup,
    WriteOptions,
    StorageError,
    StorageConnectionError,
    StorageNotFoundError,
    StoragePermissionError,
    StorageQuotaExceededError,
    DriveError,
    CannotReadFileError,
    CannotWriteFileError,
    CannotDeleteFileError,
    CannotCopyFileError,
    CannotMoveFileError,
    CannotGetMetadataError,
    CannotSetVisibilityError
)
from drive_gcs.config import GcsDriverConfig, Settings
from drive_gcs.driver import GcsDriver
from drive_gcs.factory import DriverFactory

__all__ = [
    # Data model and capability
    'BucketBackend',
    'ContentHeaders',
    'DriveFileStats',
    'MoveResult',
    'ObjectMetadata',
    'Visibility',
    'VisibilityLookup',
    'WriteOptions',

    # Backend errors
    'StorageError',
    'StorageConnectionError',
    'StorageNotFoundError',
    'StoragePermissionError',
    'StorageQuotaExceededError',

    # Driver errors
    'DriveError',
    'CannotReadFileError',
    'CannotWriteFileError',
    'CannotDeleteFileError',
    'CannotCopyFileError',
    'CannotMoveFileError',
    'CannotGetMetadataError',
    'CannotSetVisibilityError',

    # Driver, config and factory
    'GcsDriver',
    'GcsDriverConfig',
    'Settings',
    'DriverFactory',
]
