"""Event time formatting and the canonical @timestamp choice."""
from __future__ import annotations

import enum
import logging
import typing as t

from .envelope import MessageType

log = logging.getLogger("dnstapflat.timestamps")

NSEC_PER_SEC = 1_000_000_000
SEC_PER_DAY = 86400


class TimeSource(enum.Enum):
    QUERY_TIME = "query_time"
    RESPONSE_TIME = "response_time"


def _source_for(mtype: MessageType) -> TimeSource:
    if mtype.name.endswith("_QUERY"):
        return TimeSource.QUERY_TIME
    if mtype.name.endswith("_RESPONSE"):
        return TimeSource.RESPONSE_TIME
    raise ValueError(f"message type {mtype.name} is neither a query nor a response")


TIMESTAMP_SOURCE: dict[MessageType, TimeSource] = {m: _source_for(m) for m in MessageType}


def civil_from_days(days: int) -> tuple[int, int, int]:
    """(year, month, day) of the proleptic Gregorian date `days` after 1970-01-01."""
    z = days + 719468
    era = z // 146097
    doe = z - era * 146097
    yoe = (doe - doe // 1460 + doe // 36524 - doe // 146096) // 365
    doy = doe - (365 * yoe + yoe // 4 - yoe // 100)
    mp = (5 * doy + 2) // 153
    day = doy - (153 * mp + 2) // 5 + 1
    month = mp + 3 if mp < 10 else mp - 9
    year = yoe + era * 400 + (1 if month <= 2 else 0)
    return year, month, day


def format_time(sec: int, nsec: int = 0) -> str:
    """RFC 3339 in UTC with up to nanosecond precision.

    Trailing zeros of the fraction are trimmed and a whole second has no
    fraction at all: format_time(0, 500000000) == "1970-01-01T00:00:00.5Z".
    Any uint64 second count is accepted; years past 9999 simply get more
    digits.
    """
    extra, nsec = divmod(int(nsec), NSEC_PER_SEC)
    days, rem = divmod(int(sec) + extra, SEC_PER_DAY)
    hour, rem = divmod(rem, 3600)
    minute, second = divmod(rem, 60)
    year, month, day = civil_from_days(days)
    base = f"{year:04d}-{month:02d}-{day:02d}T{hour:02d}:{minute:02d}:{second:02d}"
    if nsec:
        base += "." + f"{nsec:09d}".rstrip("0")
    return base + "Z"


def select_timestamp(mtype, query_time: str, response_time: str) -> t.Optional[str]:
    """Pick query_time for *_QUERY types and response_time for *_RESPONSE.

    Types outside MessageType (numbers from newer producers) have no
    canonical time; None is returned and the caller leaves @timestamp out.
    """
    source = TIMESTAMP_SOURCE.get(mtype) if isinstance(mtype, MessageType) else None
    if source is None:
        log.debug("no canonical timestamp for message type %r", mtype)
        return None
    if source is TimeSource.QUERY_TIME:
        return query_time
    return response_time
