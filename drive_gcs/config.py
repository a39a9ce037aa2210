"""
Configuration for drive-gcs
"""
import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from drive_gcs.base import Visibility


# Resolve project root (one level up: drive_gcs/config.py -> drive_gcs -> repo root)
BASE_DIR = Path(__file__).resolve().parent.parent

# .env.local overrides .env
load_dotenv(BASE_DIR / ".env", override=False)
load_dotenv(BASE_DIR / ".env.local", override=True)


class GcsDriverConfig(BaseModel):
    """
    Configuration accepted by the GCS driver.

    Authentication fields are handed to the backend untouched: a key file,
    an inline service account dict, or neither for application default
    credentials.
    """

    model_config = ConfigDict(frozen=True)

    driver: str = "gcs"
    bucket: str
    visibility: Visibility = Visibility.PRIVATE
    using_uniform_acl: bool = False
    cdn_url: Optional[str] = None

    project_id: Optional[str] = None
    key_filename: Optional[str] = None
    credentials: Optional[Dict[str, Any]] = None

    @field_validator("bucket")
    @classmethod
    def bucket_required(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("GCS bucket name is required")
        return value

    def for_bucket(self, bucket: str) -> "GcsDriverConfig":
        return self.model_copy(update={"bucket": bucket})


class Settings(BaseSettings):
    """Driver settings read from the environment"""

    # Supported backends: 'gcs', 'local'
    DRIVE_BACKEND: str = os.getenv("DRIVE_BACKEND", "gcs")

    # GCS Configuration
    GCS_BUCKET: str = os.getenv("GCS_BUCKET", "")
    GCS_PROJECT_ID: str = os.getenv("GCS_PROJECT_ID", "")
    GCS_KEY_FILENAME: str = os.getenv("GCS_KEY_FILENAME", "")
    GCS_KEY: str = os.getenv("GCS_KEY", "")
    GCS_VISIBILITY: str = os.getenv("GCS_VISIBILITY", "private")
    GCS_USING_UNIFORM_ACL: bool = os.getenv("GCS_USING_UNIFORM_ACL", "false").lower() == "true"
    GCS_CDN_URL: str = os.getenv("GCS_CDN_URL", "")

    # Local Storage Configuration
    LOCAL_STORAGE_PATH: str = os.getenv("LOCAL_STORAGE_PATH", "./.local_storage")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    @property
    def gcs_credentials(self) -> Optional[Dict[str, Any]]:
        if not self.GCS_KEY:
            return None
        return json.loads(self.GCS_KEY)

    def driver_config(self) -> GcsDriverConfig:
        return GcsDriverConfig(
            bucket=self.GCS_BUCKET,
            visibility=self.GCS_VISIBILITY,
            using_uniform_acl=self.GCS_USING_UNIFORM_ACL,
            cdn_url=self.GCS_CDN_URL or None,
            project_id=self.GCS_PROJECT_ID or None,
            key_filename=self.GCS_KEY_FILENAME or None,
            credentials=self.gcs_credentials,
        )


settings = Settings()
