"""
Driver Factory for Creating Bucket Backends and Drivers

This module implements the Factory pattern for building a GcsDriver from a
configuration record and a logger. Supports an optional fallback to the
local filesystem backend when GCS is unavailable.
"""
import logging
from typing import Any, Dict, Optional

from drive_gcs.base import BucketBackend, StorageConnectionError
from drive_gcs.config import GcsDriverConfig, Settings
from drive_gcs.driver import GcsDriver

logger = logging.getLogger(__name__)


class DriverFactory:
    """
    Factory for bucket backends and drivers.

    Supports:
    - GCS (Google Cloud Storage)
    - Local (Local filesystem)
    """

    # Registry of available backends
    _backends: Dict[str, type] = {}

    @classmethod
    def register_backend(cls, backend_type: str, backend_class: type):
        """
        Register a bucket backend implementation.

        Args:
            backend_type: Backend identifier (e.g., 'gcs', 'local')
            backend_class: Class implementing BucketBackend
        """
        cls._backends[backend_type.lower()] = backend_class
        logger.debug("Registered bucket backend: %s", backend_type)

    @classmethod
    def _load_backend(cls, backend_type: str):
        """Lazily import and register a built-in backend."""
        if backend_type == "gcs":
            from drive_gcs.gcs_backend import GCSBucketBackend
            cls.register_backend("gcs", GCSBucketBackend)

        elif backend_type == "local":
            from drive_gcs.local_backend import LocalBucketBackend
            cls.register_backend("local", LocalBucketBackend)

    @classmethod
    def create_backend(cls, backend_type: str, config: Dict[str, Any]) -> BucketBackend:
        """
        Create a bucket backend instance.

        Args:
            backend_type: Type of backend ('gcs', 'local')
            config: Keyword arguments for the backend class

        Raises:
            StorageConnectionError: If the backend is unknown or cannot be created
        """
        backend_type = backend_type.lower()

        if backend_type not in cls._backends:
            cls._load_backend(backend_type)

        if backend_type not in cls._backends:
            raise StorageConnectionError(
                f"Unknown storage backend: {backend_type}. "
                f"Available: {', '.join(sorted(cls._backends.keys())) or 'none'}"
            )

        return cls._backends[backend_type](**config)

    @staticmethod
    def backend_config(
        backend_type: str,
        config: GcsDriverConfig,
        local_path: str = "./.local_storage"
    ) -> Dict[str, Any]:
        """Build backend keyword arguments from a driver config."""
        if backend_type == "gcs":
            return {
                "bucket_name": config.bucket,
                "credentials_path": config.key_filename,
                "credentials_info": config.credentials,
                "project_id": config.project_id,
            }

        if backend_type == "local":
            return {
                "base_path": local_path,
                "bucket_name": config.bucket,
                "uniform_acl": config.using_uniform_acl,
            }

        return {}

    @classmethod
    def create_driver(
        cls,
        config: GcsDriverConfig,
        logger: Optional[logging.Logger] = None,
        backend_type: str = "gcs",
        auto_fallback: bool = False,
        local_path: str = "./.local_storage"
    ) -> GcsDriver:
        """
        Create a driver for the given configuration.

        Args:
            config: Driver configuration
            logger: Logger handed to the driver
            backend_type: Backend to bind the driver to ('gcs', 'local')
            auto_fallback: If True, use the local backend when the requested
                one cannot be created or fails its health check
            local_path: Base directory for the local backend

        Raises:
            StorageConnectionError: If the backend cannot be created
        """
        log = logger or logging.getLogger(__name__)
        backend_type = backend_type.lower()

        try:
            backend = cls.create_backend(backend_type, cls.backend_config(backend_type, config, local_path))
            if auto_fallback and not backend.health_check():
                raise StorageConnectionError(
                    f"Storage backend '{backend_type}' failed health check"
                )
        except StorageConnectionError as e:
            if not auto_fallback or backend_type == "local":
                raise
            log.warning("Failed to initialize %s storage: %s", backend_type, e)
            log.info("Falling back to local storage at %s", local_path)
            backend = cls.create_backend("local", cls.backend_config("local", config, local_path))

        log.info("Drive driver ready (backend=%s, bucket=%s)", backend.get_backend_type(), config.bucket)
        return GcsDriver(config, log, backend=backend)

    @classmethod
    def create_from_env(
        cls,
        settings: Optional[Settings] = None,
        logger: Optional[logging.Logger] = None,
        auto_fallback: bool = False
    ) -> GcsDriver:
        """
        Create a driver from application settings/environment.

        This is the recommended way to initialize the driver in your application.
        """
        if settings is None:
            from drive_gcs.config import settings

        return cls.create_driver(
            settings.driver_config(),
            logger,
            backend_type=settings.DRIVE_BACKEND,
            auto_fallback=auto_fallback,
            local_path=settings.LOCAL_STORAGE_PATH
        )
