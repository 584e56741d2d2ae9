# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Signing timestamps.

A signing operation captures the current time exactly once and reuses
the resulting SigningTime for the credential scope, the string to sign
and the ``X-Amz-Date`` header.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from edge_signer.errors import ClockError


#: Format of ``X-Amz-Date`` and the string-to-sign timestamp.
AMZ_DATE_FORMAT = "%Y%m%dT%H%M%SZ"

#: Format of the credential scope date.
DATE_STAMP_FORMAT = "%Y%m%d"

#: Drift beyond which backends reject a signature.
MAX_CLOCK_SKEW_MINUTES = 5


@dataclass(frozen=True)
class SigningTime:
    """One captured signing instant in both wire formats.

    Attributes:
        amz_date: ISO8601 basic timestamp (YYYYMMDDTHHMMSSZ).
        date_stamp: Scope date (YYYYMMDD).
    """

    amz_date: str
    date_stamp: str

    @classmethod
    def from_datetime(cls, moment: datetime) -> SigningTime:
        """Build from an aware datetime, converting to UTC.

        Raises:
            ClockError: If the datetime is naive.
        """
        if moment.tzinfo is None or moment.utcoffset() is None:
            raise ClockError(
                f"Signing time must be timezone-aware, got {moment!r}"
            )
        utc = moment.astimezone(UTC)
        return cls(
            amz_date=utc.strftime(AMZ_DATE_FORMAT),
            date_stamp=utc.strftime(DATE_STAMP_FORMAT),
        )


def utc_now() -> datetime:
    """Return the current time in UTC."""
    return datetime.now(UTC)


def capture_signing_time(
    now: datetime | None = None,
    *,
    clock: Callable[[], datetime] = utc_now,
) -> SigningTime:
    """Capture the signing time for one invocation.

    Args:
        now: Fixed instant to use instead of reading the clock.
        clock: Clock to read when ``now`` is not given.

    Returns:
        SigningTime for the captured instant.

    Raises:
        ClockError: If the clock fails or returns a naive datetime.
    """
    if now is None:
        try:
            now = clock()
        except (OSError, OverflowError, ValueError) as e:
            raise ClockError(f"Unable to read system clock: {e}") from e
    return SigningTime.from_datetime(now)


def parse_amz_date(value: str) -> datetime:
    """Parse an ``X-Amz-Date`` timestamp into an aware UTC datetime.

    Raises:
        ClockError: If the value is not YYYYMMDDTHHMMSSZ.
    """
    try:
        return datetime.strptime(value, AMZ_DATE_FORMAT).replace(tzinfo=UTC)
    except (ValueError, TypeError) as e:
        raise ClockError(f"Invalid signing timestamp: {value!r}") from e


def check_clock_skew(
    amz_date: str, *, now: datetime | None = None
) -> tuple[bool, int]:
    """Check if a signing timestamp differs significantly from system time.

    Args:
        amz_date: ISO8601 basic timestamp.
        now: Reference time (defaults to the current time).

    Returns:
        Tuple of (is_skewed, drift_minutes). is_skewed is True if
        drift exceeds MAX_CLOCK_SKEW_MINUTES.

    Raises:
        ClockError: If the timestamp cannot be parsed.
    """
    request_time = parse_amz_date(amz_date)
    reference = now if now is not None else utc_now()
    drift = abs((reference - request_time).total_seconds())
    drift_minutes = int(drift / 60)
    return drift_minutes > MAX_CLOCK_SKEW_MINUTES, drift_minutes
