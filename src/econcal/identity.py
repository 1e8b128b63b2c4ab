"""Stable content-hash identity for calendar events."""

import hashlib
from datetime import datetime

ID_LENGTH = 20
SEPARATOR = '|'


def make_id(currency, normalized_event, time_utc, impact):
    """
    Generate the upsert key for an event.

    The four semantic fields are lower-cased, joined and hashed with SHA-256;
    the hex digest is truncated to ID_LENGTH characters (80 bits). Re-scraping
    the same calendar day yields the same id for the same logical event.
    """
    if isinstance(time_utc, datetime):
        time_utc = time_utc.isoformat()
    content = SEPARATOR.join(
        str(part or '').strip().lower()
        for part in (currency, normalized_event, time_utc, impact)
    )
    return hashlib.sha256(content.encode('utf-8')).hexdigest()[:ID_LENGTH]
