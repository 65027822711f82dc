"""Engine configuration.

All tunable rule constants live in EngineSettings. Engines receive a settings
instance explicitly; get_settings() is only a convenience for process wiring.

Environment Variables:
    CIVIC_SENSITIVE_RADIUS_M: Sensitive-location radius in meters (default: 500)
    CIVIC_CLUSTER_RADIUS_M: Similar-complaint radius in meters (default: 1000)
    CIVIC_CLUSTER_THRESHOLD: Similar complaints needed for CRITICAL (default: 3)
    CIVIC_PENDING_HOURS: Open hours before escalation (default: 48)
    CIVIC_DEPENDENCY_TIMEOUT_S: Per-call collaborator timeout (default: 10.0)
    CIVIC_DEPENDENCY_RETRY_ATTEMPTS: Collaborator call attempts (default: 3)
    CIVIC_SENSITIVE_LOCATIONS: JSON list of {"name", "point": {"lat", "lng"}}
"""

import json
import logging
import os
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, model_validator

from civic_core_lib.models.directory import DEFAULT_DEPARTMENTS, Department, SensitiveLocation

logger = logging.getLogger(__name__)


class EngineSettings(BaseModel):
    """Rule constants and collaborator call policy."""

    sensitive_radius_m: float = Field(default=500.0, gt=0)
    cluster_radius_m: float = Field(default=1000.0, gt=0)
    cluster_threshold: int = Field(default=3, ge=1)
    pending_hours: float = Field(default=48.0, gt=0)

    # List order is match priority: first location within radius wins.
    sensitive_locations: List[SensitiveLocation] = Field(default_factory=list)

    departments: List[Department] = Field(
        default_factory=lambda: [d.model_copy(deep=True) for d in DEFAULT_DEPARTMENTS]
    )

    dependency_timeout_s: float = Field(default=10.0, gt=0)
    dependency_retry_attempts: int = Field(default=3, ge=1)

    @model_validator(mode='after')
    def categories_map_to_one_department(self) -> 'EngineSettings':
        """A category may belong to at most one department."""
        owner = {}
        for department in self.departments:
            for category in department.categories:
                if category in owner:
                    raise ValueError(
                        f"Category '{category.value}' mapped to both "
                        f"'{owner[category]}' and '{department.department_id}'"
                    )
                owner[category] = department.department_id
        return self

    @classmethod
    def from_env(cls) -> "EngineSettings":
        """Build settings from CIVIC_* environment variables, keeping defaults for bad values."""
        overrides = {}
        for field_name, env_key, cast in _ENV_OVERRIDES:
            raw = os.getenv(env_key)
            if raw is None or raw == "":
                continue
            try:
                overrides[field_name] = cast(raw)
            except ValueError:
                logger.warning(f"Invalid value in {env_key}: {raw}")

        raw_locations = os.getenv("CIVIC_SENSITIVE_LOCATIONS")
        if raw_locations:
            try:
                overrides["sensitive_locations"] = [
                    SensitiveLocation.model_validate(item) for item in json.loads(raw_locations)
                ]
            except (ValueError, TypeError, PydanticValidationError):
                logger.warning("Invalid CIVIC_SENSITIVE_LOCATIONS, ignoring")

        try:
            return cls(**overrides)
        except PydanticValidationError as exc:
            logger.warning(f"Rejected environment overrides, using defaults: {exc}")
            return cls()


_ENV_OVERRIDES: List[tuple] = [
    ("sensitive_radius_m", "CIVIC_SENSITIVE_RADIUS_M", float),
    ("cluster_radius_m", "CIVIC_CLUSTER_RADIUS_M", float),
    ("cluster_threshold", "CIVIC_CLUSTER_THRESHOLD", int),
    ("pending_hours", "CIVIC_PENDING_HOURS", float),
    ("dependency_timeout_s", "CIVIC_DEPENDENCY_TIMEOUT_S", float),
    ("dependency_retry_attempts", "CIVIC_DEPENDENCY_RETRY_ATTEMPTS", int),
]


# Singleton instance for process-level wiring
_settings_instance: Optional[EngineSettings] = None


def get_settings() -> EngineSettings:
    """Get or create the global EngineSettings instance (read from the environment)."""
    global _settings_instance

    if _settings_instance is None:
        _settings_instance = EngineSettings.from_env()

    return _settings_instance


def reset_settings():
    """Reset the global EngineSettings instance.

    Used for testing or reconfiguration.
    """
    global _settings_instance
    _settings_instance = None
    logger.warning("EngineSettings instance reset")


