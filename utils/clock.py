from datetime import datetime, timezone
from flask import current_app


def utc_now() -> datetime:
    # Naive UTC, matching the DateTime columns
    return datetime.now(timezone.utc).replace(tzinfo=None)


def now() -> datetime:
    """Current time from the app's configured clock."""
    clock = current_app.config.get("CLOCK") or utc_now
    return clock()
