import logging

from models import db
from models.user_session import UserSession, END_TIMEOUT, END_LOGOUT, END_REVOKED
from security.activity import evaluate, TIMED_OUT
from security.tokens import delete_token, delete_user_tokens
from utils.audit import log_event
from utils.clock import now

logger = logging.getLogger(__name__)


def get_session_for_token(token_id):
    return UserSession.query.filter_by(token_id=token_id).first()


def deactivate_session(sess: UserSession, at, reason: str) -> bool:
    """
    Terminal transition. Returns False if the session had already ended,
    leaving its original end time and reason in place. Caller commits.
    """
    if not sess.is_active:
        return False
    sess.is_active = False
    sess.ended_at = at
    sess.ended_reason = reason
    return True


def enforce_session_activity(token):
    """
    Runs the inactivity guard for the presented access token and applies the
    outcome. Returns the GuardDecision; on rejection the token is gone.
    """
    current = now()
    sess = get_session_for_token(token.id)
    decision = evaluate(sess, current)

    if not decision.allowed:
        if decision.deactivate:
            deactivate_session(sess, current, END_TIMEOUT)
        delete_token(token.id)
        db.session.commit()

        timed_out = decision.verdict == TIMED_OUT
        logger.info("Session %s rejected (%s)", sess.id, decision.verdict)
        log_event(
            "SESSION_EXPIRED" if timed_out else "SESSION_REJECTED",
            user_id=sess.user_id,
            entity="user_session",
            entity_id=sess.id,
            level="warning",
            message="Session timed out after inactivity" if timed_out else "Request with an ended session",
        )
        return decision

    if decision.touch:
        sess.last_activity_at = current
        sess.is_active = True
        token.last_used_at = current
        db.session.commit()

    return decision


def list_sessions(user_id: int):
    return (
        UserSession.query
        .filter_by(user_id=user_id)
        .order_by(UserSession.last_activity_at.desc(), UserSession.id.desc())
        .all()
    )


def revoke_session(user_id: int, session_id: int) -> bool:
    """
    Revokes one of the user's own sessions. Sessions owned by someone else
    are reported the same as missing ones.
    """
    sess = UserSession.query.filter_by(id=session_id, user_id=user_id).first()
    if not sess:
        return False

    delete_token(sess.token_id)
    deactivate_session(sess, now(), END_REVOKED)
    db.session.commit()
    return True


def revoke_all_sessions(user_id: int, except_token_id=None, reason: str = END_REVOKED) -> int:
    """
    Deletes every credential of the user except `except_token_id` and ends
    the matching sessions. Returns the number of credentials revoked.
    """
    ended_at = now()
    q = UserSession.query.filter_by(user_id=user_id, is_active=True)
    if except_token_id is not None:
        q = q.filter(UserSession.token_id != except_token_id)
    for sess in q.all():
        deactivate_session(sess, ended_at, reason)

    count = delete_user_tokens(user_id, except_token_id=except_token_id)
    db.session.commit()
    return count


def end_current_session(token, reason: str = END_LOGOUT) -> None:
    sess = get_session_for_token(token.id)
    if sess:
        deactivate_session(sess, now(), reason)
    delete_token(token.id)
    db.session.commit()
