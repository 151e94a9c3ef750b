# investment_tracker/services/clock.py
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(moment: datetime) -> str:
    '''Format as 2025-01-31T09:15:00.000Z (millisecond precision, UTC).'''
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def parse_iso(value: str) -> Optional[datetime]:
    '''Parse an ISO-8601 string; returns None when it is not one.'''
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_epoch_ms(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp() * 1000)


def next_timestamp(previous: Optional[str], clock: Clock = utc_now) -> str:
    '''
    Timestamp for a mutation that must sort strictly after `previous`.
    Two edits within the same millisecond are pushed 1ms apart.
    '''
    candidate = to_iso(clock())
    last = parse_iso(previous) if previous else None
    if last is not None and parse_iso(candidate) <= last:
        return to_iso(last + timedelta(milliseconds=1))
    return candidate
