"""Actor context extracted from API Gateway headers.

The gateway authenticates the caller and forwards identity as X-User-* headers.
The engine uses the resulting Actor to decide who may change a complaint.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from fastapi import HTTPException, Request, status

logger = logging.getLogger(__name__)


class UserRole(str, Enum):
    """Portal roles"""

    CITIZEN = "citizen"
    OFFICER = "officer"
    ADMIN = "admin"
    SYSTEM = "system"


@dataclass(frozen=True)
class Actor:
    """Who is performing an engine operation.

    Attributes:
        user_id: User ID from X-User-ID header ('system' for batch jobs)
        role: Role from X-User-Role header
        correlation_id: Optional correlation ID for request tracing
    """

    user_id: str
    role: UserRole = UserRole.CITIZEN
    correlation_id: Optional[str] = None

    @property
    def is_staff(self) -> bool:
        return self.role in (UserRole.OFFICER, UserRole.ADMIN, UserRole.SYSTEM)

    @property
    def is_admin(self) -> bool:
        return self.role in (UserRole.ADMIN, UserRole.SYSTEM)


SYSTEM_ACTOR = Actor(user_id="system", role=UserRole.SYSTEM)


def get_actor(request: Request) -> Actor:
    """Extract the acting user from API Gateway headers.

    Unknown or missing roles fall back to CITIZEN, the least privileged role;
    SYSTEM cannot be claimed through headers.

    Raises:
        HTTPException: If required X-User-ID header is missing
    """
    user_id = request.headers.get("X-User-ID")
    if not user_id:
        logger.error("Missing X-User-ID header in request")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-ID header required (should be added by API Gateway)",
        )

    role = UserRole.CITIZEN
    role_header = (request.headers.get("X-User-Role") or "").strip().lower()
    if role_header:
        try:
            role = UserRole(role_header)
        except ValueError:
            logger.warning(f"Unknown X-User-Role header: {role_header}")
        if role == UserRole.SYSTEM:
            logger.warning(f"Rejected system role claim from {user_id}")
            role = UserRole.CITIZEN

    return Actor(
        user_id=user_id,
        role=role,
        correlation_id=request.headers.get("X-Correlation-ID"),
    )
