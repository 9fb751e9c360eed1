import json
import logging

from fastapi import Request
from sqlalchemy.orm import Session

from smartstock.models.user import AuditLog

logger = logging.getLogger(__name__)


def get_client_ip(request: Request) -> str | None:
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


def log_audit(
    db: Session,
    event_type: str,
    actor_user_id: int | None,
    entity_id: str | None = None,
    ip_address: str | None = None,
    details: dict | None = None,
) -> None:
    """Stage an audit row on the session; it is written with the caller's commit."""
    db.add(
        AuditLog(
            event_type=event_type,
            actor_user_id=actor_user_id,
            entity_id=entity_id,
            ip_address=ip_address,
            details=json.dumps(details or {}, default=str),
        )
    )
    logger.debug("Audit %s on %s by user %s", event_type, entity_id, actor_user_id)
