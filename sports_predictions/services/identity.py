"""
@file: identity.py
@description:
Deterministic event identity. The event reference is the SHA-256 hex digest of
`sport|home_team|away_team|event_date`, where the date is rendered as a UTC
ISO-8601 instant with millisecond precision (`2026-01-15T15:00:00.000Z`).
Creating the same event twice therefore resolves to the same row.

@dependencies:
- hashlib: For SHA-256
- sports_predictions.core.errors: ValidationError for unparseable dates
"""

import hashlib
from datetime import datetime
from typing import Union

from sports_predictions.core.errors import ValidationError
from sports_predictions.db.types import as_utc


def parse_instant(value: Union[str, datetime], field: str = "date") -> datetime:
    """
    Parse an ISO-8601 string (or pass through a datetime) as an aware UTC instant.

    Naive values are taken to be UTC.

    Raises:
        ValidationError: if the value does not parse to a valid instant.
    """
    if isinstance(value, datetime):
        return as_utc(value)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Invalid {field}: expected an ISO-8601 timestamp")
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        raise ValidationError(f"Invalid {field}: {value!r} is not a valid timestamp")
    return as_utc(parsed)


def format_instant(value: datetime) -> str:
    utc_value = as_utc(value)
    return utc_value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc_value.microsecond // 1000:03d}Z"


def compute_event_ref(
    sport: str,
    home_team: str,
    away_team: str,
    event_date: Union[str, datetime],
) -> str:
    """
    Compute the 64-character lowercase hex event reference.

    Args:
        sport: Sport name, e.g. "Football".
        home_team: Home team name.
        away_team: Away team name.
        event_date: Kick-off instant as a datetime or ISO-8601 string.

    Returns:
        str: SHA-256 hex digest of the pipe-joined identity fields.

    Raises:
        ValidationError: if event_date is not a valid instant.
    """
    instant = parse_instant(event_date, "event_date")
    payload = f"{sport}|{home_team}|{away_team}|{format_instant(instant)}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
