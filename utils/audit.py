import json
import logging

from flask import has_request_context, request
from sqlalchemy.exc import SQLAlchemyError

from models import db
from models.audit_log import AuditLog

logger = logging.getLogger(__name__)


def log_event(action: str, entity=None, entity_id=None, ip=None, metadata=None) -> bool:
    """
    Persist a security event. Outside a request (CLI) the ip must be passed in.
    Audit failures are logged and never interrupt the caller.
    """
    user_agent = None
    if has_request_context():
        # local import, security.ip_security imports this module
        from security.ip_security import get_client_ip
        ip = ip or get_client_ip(request)
        user_agent = request.headers.get("User-Agent", "")

    row = AuditLog(
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        ip=ip,
        user_agent=user_agent[:255] if user_agent else None,
        metadata_json=json.dumps(metadata) if metadata else None
    )
    try:
        db.session.add(row)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Failed to write audit event %s", action)
        return False
    return True
