from dataclasses import dataclass

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from storefront.core.exceptions import ForbiddenError, UnauthorizedError
from storefront.core.security import is_privileged, verify_access_token

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    """Caller identity taken from a verified access token."""

    id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return is_privileged({"role": self.role})


async def get_current_principal(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> Principal:
    if not credentials:
        raise UnauthorizedError("Missing authentication token")

    payload = verify_access_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        raise UnauthorizedError("Invalid or expired token")

    principal = Principal(id=str(payload["sub"]), role=str(payload.get("role", "")))
    request.state.principal = principal
    return principal


async def require_admin(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    if not principal.is_admin:
        raise ForbiddenError("Admin access required")
    return principal
