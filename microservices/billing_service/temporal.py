"""
Temporal Normalizer

Parses the loose timestamp and date strings callers send (ISO 8601 with or
without offset, space separated, date only, a few invariant layouts, RFC 2822)
into a UTC instant. Strings without an offset are taken to be UTC already.
"""

import calendar
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Callable, List, Optional, Sequence

from .protocols import TimestampFormatError

logger = logging.getLogger(__name__)


class TemporalKind(str, Enum):
    """What the caller expects: a full instant or a calendar date"""
    INSTANT = "instant"
    DATE = "date"


@dataclass(frozen=True)
class NormalizedTime:
    """A parsed (or defaulted) point in time, always timezone-aware UTC"""

    original: Optional[str]
    instant: datetime

    @property
    def epoch_seconds(self) -> int:
        """Unix timestamp as sent to Lago for usage events"""
        return calendar.timegm(self.instant.utctimetuple())

    @property
    def date_string(self) -> str:
        """YYYY-MM-DD as sent to Lago for payments"""
        return self.instant.date().isoformat()

    @property
    def defaulted(self) -> bool:
        return _is_blank(self.original)


# Fallback layouts tried after the offset-aware ISO parse, first match wins
INSTANT_PATTERNS: Sequence[str] = (
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%dT%H:%M:%S.%fZ",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M:%SZ",
    "%Y-%m-%d",
)

# Payment dates prefer the date-only layout
DATE_PATTERNS: Sequence[str] = ("%Y-%m-%d",) + tuple(
    p for p in INSTANT_PATTERNS if p != "%Y-%m-%d"
)

INVARIANT_PATTERNS: Sequence[str] = (
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d, %Y",
    "%B %d, %Y",
)

# strptime's %f takes at most 6 digits
_EXCESS_FRACTION = re.compile(r"(\.\d{6})\d+")


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _parse_offset_aware(text: str) -> Optional[datetime]:
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return None
    try:
        return parsed.astimezone(timezone.utc)
    except OverflowError:
        return None


def _parse_patterns(text: str, patterns: Sequence[str]) -> Optional[datetime]:
    for pattern in patterns:
        try:
            return datetime.strptime(text, pattern).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    return None


def _parse_invariant(text: str) -> Optional[datetime]:
    try:
        return _as_utc(datetime.fromisoformat(text))
    except (ValueError, OverflowError):
        pass

    parsed = _parse_patterns(text, INVARIANT_PATTERNS)
    if parsed is not None:
        return parsed

    try:
        return _as_utc(parsedate_to_datetime(text))
    except (TypeError, ValueError, IndexError, OverflowError):
        return None


def _rules_for(kind: TemporalKind) -> List[Callable[[str], Optional[datetime]]]:
    patterns = DATE_PATTERNS if kind is TemporalKind.DATE else INSTANT_PATTERNS
    return [
        _parse_offset_aware,
        lambda text: _parse_patterns(_EXCESS_FRACTION.sub(r"\1", text), patterns),
        _parse_invariant,
    ]


def normalize(
    value: Optional[str],
    kind: TemporalKind = TemporalKind.INSTANT,
    now: Optional[datetime] = None,
) -> NormalizedTime:
    """
    Normalize a caller-supplied timestamp or date to a UTC instant.

    Args:
        value: Raw string; None, empty or whitespace means "now"
        kind: INSTANT defaults to the current time, DATE to today at 00:00:00
        now: Clock override for the default

    Returns:
        NormalizedTime

    Raises:
        TimestampFormatError: No supported layout matched
    """
    kind = TemporalKind(kind)

    if _is_blank(value):
        current = _as_utc(now) if now is not None else datetime.now(timezone.utc)
        if kind is TemporalKind.DATE:
            current = current.replace(hour=0, minute=0, second=0, microsecond=0)
        return NormalizedTime(original=value, instant=current)

    text = value.strip()
    for rule in _rules_for(kind):
        parsed = rule(text)
        if parsed is not None:
            return NormalizedTime(original=value, instant=parsed)

    logger.warning(f"Unrecognized {kind.value} format: {value!r}")
    raise TimestampFormatError(value, kind.value)


__all__ = [
    "TemporalKind",
    "NormalizedTime",
    "INSTANT_PATTERNS",
    "DATE_PATTERNS",
    "INVARIANT_PATTERNS",
    "normalize",
]
