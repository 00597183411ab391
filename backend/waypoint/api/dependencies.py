"""Request Dependencies — authenticated caller resolution for route handlers.

Invariants:
    - Every exploration route resolves a CurrentUser before touching the database
    - uid taken from the `uid` claim, falling back to `sub`
    - Admin routes additionally require the custom claim admin == True

Design Decisions:
    - Dependencies raise WaypointError subclasses; the global handler shapes the 401/403
    - Dev bypass is a settings flag, never inferred from the environment name
"""

from dataclasses import dataclass, field

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from waypoint.config import get_settings
from waypoint.core.errors import AdminRequiredError, AuthenticationError
from waypoint.infrastructure.database import get_db
from waypoint.infrastructure.firebase_auth import verify_token
from waypoint.services.catalog_service import CatalogService
from waypoint.services.exploration_service import ExplorationService


@dataclass
class CurrentUser:
    """The caller, as established by token verification."""
    uid: str
    is_admin: bool = False
    claims: dict = field(default_factory=dict)


def _extract_bearer(authorization: str | None) -> str | None:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    token = authorization[len("Bearer "):].strip()
    return token or None


async def get_current_user(
    authorization: str | None = Header(None),
) -> CurrentUser:
    """Verify the bearer token and return the caller."""
    settings = get_settings()
    if settings.auth_dev_bypass:
        return CurrentUser(
            uid=settings.auth_dev_uid,
            is_admin=settings.auth_dev_admin,
            claims={"uid": settings.auth_dev_uid},
        )

    token = _extract_bearer(authorization)
    if not token:
        raise AuthenticationError("Missing Bearer token")

    claims = await verify_token(token)
    uid = claims.get("uid") or claims.get("sub")
    if not uid:
        raise AuthenticationError("Missing uid")
    return CurrentUser(
        uid=uid, is_admin=claims.get("admin") is True, claims=claims,
    )


async def require_admin(
    user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    if not user.is_admin:
        raise AdminRequiredError()
    return user


async def get_exploration_service(
    db: AsyncSession = Depends(get_db),
) -> ExplorationService:
    return ExplorationService(db)


async def get_catalog_service(
    db: AsyncSession = Depends(get_db),
) -> CatalogService:
    return CatalogService(db)
