"""Pytest fixtures for testing."""

import logging

import pytest

from drive_gcs.config import GcsDriverConfig
from drive_gcs.driver import GcsDriver
from drive_gcs.local_backend import LocalBucketBackend


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("drive_gcs.tests")


@pytest.fixture
def acl_backend(tmp_path) -> LocalBucketBackend:
    """Bucket with per-object ACLs."""
    return LocalBucketBackend(str(tmp_path), "acl-bucket")


@pytest.fixture
def uniform_backend(tmp_path) -> LocalBucketBackend:
    """Bucket with uniform bucket-level access."""
    return LocalBucketBackend(str(tmp_path), "uniform-bucket", uniform_acl=True)


@pytest.fixture
def driver(acl_backend, logger) -> GcsDriver:
    config = GcsDriverConfig(bucket="acl-bucket", visibility="private", using_uniform_acl=False)
    return GcsDriver(config, logger, backend=acl_backend)


@pytest.fixture
def uniform_driver(uniform_backend, logger) -> GcsDriver:
    config = GcsDriverConfig(bucket="uniform-bucket", visibility="private", using_uniform_acl=True)
    return GcsDriver(config, logger, backend=uniform_backend)
