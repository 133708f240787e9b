from datetime import datetime, timezone

SECONDS_PER_DAY = 60 * 60 * 24

def utc_now() -> datetime:
    """Naive UTC timestamp, matching what sqlite hands back"""
    return datetime.now(timezone.utc).replace(tzinfo=None)
