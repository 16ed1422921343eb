"""
Inactivity guard decisions.

Everything here is pure: the caller passes the session row (or None) and the
current time, and gets back what to do. Applying the decision to storage
lives in security.session.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

INACTIVITY_LIMIT = timedelta(minutes=30)
ACTIVITY_REFRESH_INTERVAL = timedelta(seconds=60)

ALLOW = "allow"
REVOKED = "revoked"
TIMED_OUT = "timeout"


@dataclass(frozen=True)
class GuardDecision:
    verdict: str
    # persist last_activity_at = now
    touch: bool = False
    # flip is_active to False before rejecting
    deactivate: bool = False

    @property
    def allowed(self) -> bool:
        return self.verdict == ALLOW


def should_persist(last_persisted: Optional[datetime], now: datetime, min_interval: timedelta) -> bool:
    """True when a heartbeat write is due. Never True for a `now` behind the stored value."""
    if last_persisted is None:
        return True
    return now - last_persisted >= min_interval


def last_seen(session) -> datetime:
    if session.last_activity_at is None:
        return session.created_at
    return max(session.last_activity_at, session.created_at)


def evaluate(session, now: datetime,
             limit: timedelta = INACTIVITY_LIMIT,
             refresh_interval: timedelta = ACTIVITY_REFRESH_INTERVAL) -> GuardDecision:
    # Untracked tokens (issued before sessions were recorded) pass through
    if session is None:
        return GuardDecision(ALLOW)

    if not session.is_active:
        return GuardDecision(REVOKED)

    if now - last_seen(session) > limit:
        return GuardDecision(TIMED_OUT, deactivate=True)

    return GuardDecision(ALLOW, touch=should_persist(session.last_activity_at, now, refresh_interval))
