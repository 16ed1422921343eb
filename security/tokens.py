import hashlib
import logging
import secrets

from flask import request

from models import db
from models.access_token import AccessToken
from models.user_session import UserSession
from utils.clock import now

logger = logging.getLogger(__name__)


def _hash_token(token: str) -> str:
    # SHA-256 is fine for hashing random bearer tokens
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def client_ip() -> str:
    return request.headers.get("X-Forwarded-For", request.remote_addr) or "unknown"


def issue_token(user, name: str = "auth_token"):
    """
    Mints a bearer token for `user` and the device session that tracks it.

    Returns (raw_token, session). Only the token hash is stored; the raw
    value is handed to the client once.
    """
    raw_token = secrets.token_urlsafe(40)
    issued_at = now()

    token = AccessToken(
        user_id=user.id,
        name=name,
        token_hash=_hash_token(raw_token),
        created_at=issued_at,
    )
    db.session.add(token)
    db.session.flush()

    user_agent = request.headers.get("User-Agent")
    sess = UserSession(
        user_id=user.id,
        token_id=token.id,
        device_name=(user_agent or "Unknown")[:255],
        ip_address=client_ip()[:64],
        user_agent=user_agent[:255] if user_agent else None,
        last_activity_at=issued_at,
        is_active=True,
        created_at=issued_at,
    )
    db.session.add(sess)
    db.session.commit()

    logger.info("Issued token %s for user %s", token.id, user.id)
    return raw_token, sess


def bearer_token_from_request():
    header = request.headers.get("Authorization") or ""
    scheme, _, value = header.partition(" ")
    if scheme.lower() != "bearer" or not value.strip():
        return None
    return value.strip()


def resolve_token(raw_token: str):
    if not raw_token:
        return None
    return AccessToken.query.filter_by(token_hash=_hash_token(raw_token)).first()


def delete_token(token_id) -> bool:
    """Deletes a credential by id. Caller commits."""
    deleted = AccessToken.query.filter_by(id=token_id).delete(synchronize_session=False)
    return deleted > 0


def delete_user_tokens(user_id: int, except_token_id=None) -> int:
    q = AccessToken.query.filter(AccessToken.user_id == user_id)
    if except_token_id is not None:
        q = q.filter(AccessToken.id != except_token_id)
    return q.delete(synchronize_session=False)
