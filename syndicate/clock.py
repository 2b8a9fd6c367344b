from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Wall-clock UTC time as a naive datetime, the form persisted in every table."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def rfc3339(moment: datetime) -> str:
    """UTC timestamp with a ``Z`` suffix, as sent in event payloads."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment.isoformat() + "Z"
