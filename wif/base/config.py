"""
Pydantic configuration model for the GCP adapters.

Validates the project configuration at initialization time instead of
silently passing bad values to SDK clients.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any
from pydantic import BaseModel, ConfigDict, Field, model_validator


class GCPConfig(BaseModel):
    """Configuration for the GCP adapters.

    Values are resolved in order:
    1. Explicit values passed in the config dict.
    2. Environment variables (GOOGLE_CLOUD_PROJECT, GOOGLE_CLOUD_PROJECT_NUMBER,
       GOOGLE_APPLICATION_CREDENTIALS).
    3. If neither is set, credentials are left as None so the GCP SDK can fall
       back to Application Default Credentials (ADC).
    """

    model_config = ConfigDict(extra="forbid")

    project_id: str | None = Field(default=None, description="GCP project ID")
    project_number: str | None = Field(
        default=None, description="GCP project number (used in principal identifiers)"
    )
    location: str = Field(default="global", description="Workload identity pool location")
    credentials: Any | None = Field(default=None, description="GCP credentials object")
    credentials_path: str | None = Field(
        default=None, description="Path to service account JSON key file"
    )

    @model_validator(mode="before")
    @classmethod
    def resolve_from_env(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Fall back to environment variables for missing config."""
        if not values.get("project_id"):
            values["project_id"] = os.environ.get("GOOGLE_CLOUD_PROJECT") or os.environ.get(
                "GCLOUD_PROJECT"
            )
        if not values.get("project_number"):
            values["project_number"] = os.environ.get("GOOGLE_CLOUD_PROJECT_NUMBER")
        if not values.get("credentials_path"):
            values["credentials_path"] = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS")
        return values

    @model_validator(mode="after")
    def validate_project_and_credentials(self) -> GCPConfig:
        """Ensure project_id is set and load credentials from path if needed."""
        if self.project_id is None:
            raise ValueError(
                "GCP project_id is required. Set it explicitly or via "
                "GOOGLE_CLOUD_PROJECT / GCLOUD_PROJECT environment variable."
            )
        if self.credentials is None and self.credentials_path:
            path = Path(self.credentials_path)
            if not path.exists():
                raise ValueError(f"Credentials file not found: {self.credentials_path}")
            from google.oauth2 import service_account  # lazy import

            self.credentials = service_account.Credentials.from_service_account_file(
                str(path), scopes=["https://www.googleapis.com/auth/cloud-platform"]
            )
        return self


def validate_config(config: dict | GCPConfig) -> GCPConfig:
    """Validate and return a typed GCP config model.

    Args:
        config: Raw configuration dictionary, or an already validated model.

    Returns:
        A validated :class:`GCPConfig`.

    Raises:
        pydantic.ValidationError: If the config is invalid.
    """
    if isinstance(config, GCPConfig):
        return config
    return GCPConfig(**config)


__all__ = [
    "GCPConfig",
    "validate_config",
]
