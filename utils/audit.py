import json
from flask import has_request_context, request
from models import db
from models.audit_log import AuditLog
from utils.clock import now


def log_event(action: str, user_id=None, admin_id=None, entity=None, entity_id=None,
              level="info", message=None, metadata=None):
    ip = None
    user_agent = None
    if has_request_context():
        ip = request.headers.get("X-Forwarded-For", request.remote_addr)
        user_agent = request.headers.get("User-Agent", "")

    row = AuditLog(
        user_id=user_id,
        admin_id=admin_id,
        action=action,
        level=level,
        message=message,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        ip=ip,
        user_agent=user_agent[:255] if user_agent else None,
        metadata_json=json.dumps(metadata, default=str) if metadata else None,
        timestamp=now(),
    )
    db.session.add(row)
    db.session.commit()
    return row
