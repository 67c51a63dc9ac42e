import logging
from uuid import UUID

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.middleware.request_id import request_id_var
from storefront.audit.models import AuditLog

logger = logging.getLogger(__name__)


def audit_context(request: Request) -> tuple[str | None, str | None]:
    """Extract client IP (proxy-aware) and User-Agent from a request.

    Returns (ip_address, user_agent).
    """
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        ip = forwarded_for.split(",")[0].strip()
    elif request.client:
        ip = request.client.host
    else:
        ip = None

    user_agent = request.headers.get("user-agent")
    return ip, user_agent


async def write_audit_log(
    db: AsyncSession,
    *,
    actor_id: str,
    action: str,
    resource_type: str,
    resource_id: UUID | None = None,
    details: dict | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    entry = AuditLog(
        actor_id=actor_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        details=details,
        ip_address=ip_address,
        user_agent=user_agent,
        correlation_id=request_id_var.get("") or None,
    )
    db.add(entry)
    logger.info("Audit %s on %s %s", action, resource_type, resource_id)


async def audit_admin_action(
    db: AsyncSession,
    request: Request,
    actor_id: str,
    action: str,
    resource_type: str,
    resource_id: UUID | None = None,
    details: dict | None = None,
) -> None:
    ip, user_agent = audit_context(request)
    await write_audit_log(
        db, actor_id=actor_id, action=action,
        resource_type=resource_type, resource_id=resource_id,
        details=details, ip_address=ip, user_agent=user_agent,
    )
