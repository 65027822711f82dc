"""Collaborator URL resolution (media, notification)."""

from civic_core_lib.discovery.service_registry import (
    DeploymentMode,
    ServiceRegistry,
    get_service_registry,
    reset_service_registry,
)

__all__ = ["DeploymentMode", "ServiceRegistry", "get_service_registry", "reset_service_registry"]
