"""Common helpers shared across the complaint models.

This module contains small foundational utilities:
- utc_now(): timezone-aware current time
- generate_complaint_id(): timestamp + random suffix identifiers
"""

import random
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def generate_complaint_id(now: datetime = None) -> str:
    """Build a complaint id from epoch milliseconds and a random 0-999 suffix.

    Unique enough for complaint volumes; not a cryptographic guarantee.
    """
    now = now or utc_now()
    millis = int(now.timestamp() * 1000)
    return f"CMP{millis}{random.randint(0, 999)}"
