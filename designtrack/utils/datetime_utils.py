from datetime import datetime, timezone
import os
import zoneinfo

def get_display_timezone():
    """
    Timezone used for presentation (month buckets, CSV dates).
    Falls back to UTC if TZ environment variable is not set or unknown.
    """
    tz_name = os.getenv('TZ', 'UTC')
    try:
        return zoneinfo.ZoneInfo(tz_name)
    except zoneinfo.ZoneInfoNotFoundError:
        return timezone.utc

def get_current_time():
    """Current instant as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)

def ensure_aware(value: datetime) -> datetime:
    """
    Attach UTC to naive datetimes.
    SQLite drops the offset on DateTime columns, so naive values read back
    from the store are UTC instants.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value

def to_iso(value: datetime) -> str:
    return ensure_aware(value).isoformat()

def parse_iso(value: str) -> datetime:
    # Accept the trailing 'Z' browsers emit with toISOString()
    if value.endswith('Z'):
        value = value[:-1] + '+00:00'
    return ensure_aware(datetime.fromisoformat(value))

def to_local(value: datetime) -> datetime:
    return ensure_aware(value).astimezone(get_display_timezone())
