"""Where the engine's HTTP collaborators live.

The media and notification services are addressed by convention:

    docker      http://civic-<name>-service:<port>
    kubernetes  http://civic-<name>-service.<namespace>.svc.cluster.local:<port>
    local       http://localhost:<port>

Environment Variables:
    DEPLOYMENT_MODE: docker (default), kubernetes or local
    K8S_NAMESPACE: Namespace used in kubernetes mode (default: civic)
    SERVICE_<NAME>_PORT: Port override, e.g. SERVICE_MEDIA_PORT=9000
"""

import logging
import os
from enum import Enum
from typing import Dict, Optional

logger = logging.getLogger(__name__)

SERVICE_PREFIX = "civic"


class DeploymentMode(Enum):
    DOCKER = "docker"
    KUBERNETES = "kubernetes"
    LOCAL = "local"


def _parse_mode(raw: str) -> DeploymentMode:
    try:
        return DeploymentMode(raw.strip().lower())
    except ValueError:
        logger.warning(f"Unknown DEPLOYMENT_MODE '{raw}', using docker")
        return DeploymentMode.DOCKER


def _port_override(service_name: str) -> Optional[int]:
    env_key = f"SERVICE_{service_name.upper().replace('-', '_')}_PORT"
    raw = os.getenv(env_key)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-numeric {env_key}={raw}")
        return None


class ServiceRegistry:
    """Resolves collaborator base URLs for the current deployment."""

    DEFAULT_PORTS: Dict[str, int] = {
        "media": 8010,
        "notification": 8011,
    }

    def __init__(
        self,
        mode: Optional[str] = None,
        namespace: Optional[str] = None,
        custom_ports: Optional[Dict[str, int]] = None,
    ):
        self.mode = _parse_mode(mode or os.getenv("DEPLOYMENT_MODE", "docker"))
        self.namespace = namespace or os.getenv("K8S_NAMESPACE", "civic")

        self.services = {**self.DEFAULT_PORTS, **(custom_ports or {})}
        for name in list(self.services):
            port = _port_override(name)
            if port is not None:
                self.services[name] = port

        logger.info(
            f"ServiceRegistry: mode={self.mode.value} namespace={self.namespace} "
            f"services={sorted(self.services)}"
        )

    def get_host(self, service_name: str) -> str:
        """Hostname only.

        Raises:
            ValueError: If the service is not registered
        """
        if service_name not in self.services:
            raise ValueError(f"Unknown service '{service_name}'; registered: {sorted(self.services)}")

        if self.mode == DeploymentMode.LOCAL:
            return "localhost"
        host = f"{SERVICE_PREFIX}-{service_name}-service"
        if self.mode == DeploymentMode.KUBERNETES:
            host = f"{host}.{self.namespace}.svc.cluster.local"
        return host

    def get_url(self, service_name: str, protocol: str = "http") -> str:
        """Base URL, e.g. ``http://civic-media-service:8010`` in docker mode."""
        url = f"{protocol}://{self.get_host(service_name)}:{self.services[service_name]}"
        logger.debug(f"{service_name} -> {url}")
        return url

    def register_service(self, service_name: str, port: int) -> None:
        self.services[service_name] = port
        logger.info(f"Registered {service_name} on port {port}")


_registry: Optional[ServiceRegistry] = None


def get_service_registry() -> ServiceRegistry:
    """Process-wide registry, built from the environment on first use."""
    global _registry
    if _registry is None:
        _registry = ServiceRegistry()
    return _registry


def reset_service_registry():
    """Drop the cached registry so the next call re-reads the environment."""
    global _registry
    _registry = None
