"""Expiration instants carried in the HTTP ``Expires`` object header.

Object stores have no TTL of their own, so every object records the
absolute instant after which it is dead. Anything that cannot be read
back as an instant counts as expired.
"""

from datetime import datetime
from datetime import timedelta
from datetime import timezone
from email.utils import format_datetime
from email.utils import parsedate_to_datetime


# One year. Used when a caller asks for an entry that never expires,
# since the header needs a concrete date.
DEFAULT_TTL = 31536000


def _utc(dt):
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _as_datetime(now):
    """Accept None (current time), a POSIX timestamp or a datetime."""
    if now is None:
        return datetime.now(timezone.utc)
    if isinstance(now, datetime):
        return _utc(now)
    return datetime.fromtimestamp(now, timezone.utc)


def expires_at(ttl, default_ttl=DEFAULT_TTL, now=None):
    """Return the aware UTC instant an entry written at ``now`` expires."""
    now = _as_datetime(now)
    # Zero, negative or missing ttl means "never", i.e. the default lifetime.
    seconds = ttl if ttl is not None and ttl > 0 else default_ttl
    # HTTP dates have whole-second resolution.
    return now.replace(microsecond=0) + timedelta(seconds=seconds)


def format_expires(dt):
    return format_datetime(_utc(dt), usegmt=True)


def parse_expires(value):
    """Return an aware UTC datetime, or None if value is absent or bad."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return _utc(value)
    try:
        return _utc(parsedate_to_datetime(value))
    except (TypeError, ValueError, IndexError):
        return None


def is_expired(value, now=None):
    expires = parse_expires(value)
    if expires is None:
        return True
    now = _as_datetime(now)
    return expires <= now
