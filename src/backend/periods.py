"""Period resolution: symbolic periods to absolute, lexically comparable bounds.

Event timestamps are ISO 8601 strings written as `YYYY-MM-DDTHH:MM:SS.mmmZ`.
Every bound produced here uses the same shape, so filtering is a plain string
comparison. Stamps written in another ISO 8601 shape (no fraction, offsets,
microseconds) are brought to that shape first; only those are parsed.

    resolve_period("7d")                      → [now − 7d, open)
    resolve_period("7d", to="2026-10-01")     → [to − 7d, to]
    resolve_period("all")                     → [beginning, open), no trend
    resolve_period("custom", from_, to)       → [from_, to], trend window before from_
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone

from backend.errors import InvalidPeriodError
from shared.enums import MetricsPeriod, PERIOD_DURATION_MS

_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(dt: datetime) -> str:
    """Format as `YYYY-MM-DDTHH:MM:SS.mmmZ` (UTC, millisecond precision)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def canonical_timestamp(value: str) -> str | None:
    """`value` as `YYYY-MM-DDTHH:MM:SS.mmmZ`, or None if it is not ISO 8601."""
    if len(value) == 24 and value[19] == "." and value[23] == "Z":
        return value
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return to_iso(dt)


def parse_bound(value: str, *, end_of_day: bool = False) -> datetime:
    """Parse an explicit from/to bound.

    A bare date means the whole UTC day: its first millisecond for a lower
    bound, its last millisecond for an upper bound.
    """
    raw = value.strip()
    try:
        if _DATE_ONLY.match(raw):
            day = date.fromisoformat(raw)
            dt = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
            if end_of_day:
                dt += timedelta(days=1) - timedelta(milliseconds=1)
            return dt
        dt = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError as exc:
        raise InvalidPeriodError(f"Invalid date bound: {value!r}") from exc
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def day_span(start: date, end: date) -> list[str]:
    """Every UTC day from start to end inclusive, as YYYY-MM-DD."""
    days = []
    d = start
    while d <= end:
        days.append(d.isoformat())
        d += timedelta(days=1)
    return days


@dataclass(frozen=True)
class TimeWindow:
    """Timestamp bounds: since inclusive, until inclusive (or exclusive)."""
    since: str | None = None
    until: str | None = None
    until_exclusive: bool = False

    def contains(self, timestamp: str) -> bool:
        timestamp = canonical_timestamp(timestamp)
        if timestamp is None:
            return False
        if self.since is not None and timestamp < self.since:
            return False
        if self.until is not None:
            if self.until_exclusive:
                return timestamp < self.until
            return timestamp <= self.until
        return True

    @property
    def since_date(self) -> str | None:
        return self.since[:10] if self.since else None

    @property
    def until_date(self) -> str | None:
        return self.until[:10] if self.until else None


@dataclass(frozen=True)
class ResolvedPeriod:
    """Absolute bounds for one metrics request."""
    period: str
    since: str | None                           # None = beginning of history
    until: str | None                           # None = open-ended (now)
    now: datetime
    previous: TimeWindow | None = None          # None = no trend available

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(since=self.since, until=self.until)

    @property
    def scan_window(self) -> TimeWindow:
        """Union of the current and previous windows, for a single scan."""
        since = self.since
        if self.previous is not None and self.previous.since is not None:
            if since is None or self.previous.since < since:
                since = self.previous.since
        return TimeWindow(since=since, until=self.until)

    @property
    def end(self) -> datetime:
        """Upper bound as a datetime (now when open-ended)."""
        if self.until is not None:
            return parse_bound(self.until)
        return self.now

    def day_axis(self, first_day: str | None = None) -> list[str]:
        """Calendar days covered by the period.

        Without a lower bound the axis starts at first_day (typically the
        earliest partition) or, failing that, at the end day.
        """
        end_day = self.end.date()
        if self.since is not None:
            start_day = date.fromisoformat(self.since[:10])
        elif first_day is not None:
            start_day = date.fromisoformat(first_day)
        else:
            start_day = end_day
        return day_span(start_day, end_day)


def resolve_period(
    period: str,
    from_: str | None = None,
    to: str | None = None,
    *,
    now: datetime | None = None,
) -> ResolvedPeriod:
    """Turn a symbolic period plus optional explicit bounds into a ResolvedPeriod.

    Raises InvalidPeriodError for unknown periods, unparseable bounds, a
    custom period missing a bound, or from_ later than to. Never touches
    the filesystem.
    """
    if now is None:
        now = _now_utc()
    try:
        kind = MetricsPeriod(period)
    except ValueError:
        raise InvalidPeriodError(f"Unknown period: {period!r}") from None

    start = parse_bound(from_) if from_ else None
    end = parse_bound(to, end_of_day=True) if to else None
    if start is not None and end is not None and start > end:
        raise InvalidPeriodError(f"'from' ({from_}) is after 'to' ({to})")

    until = to_iso(end) if end is not None else None

    if kind == MetricsPeriod.CUSTOM:
        if start is None or end is None:
            raise InvalidPeriodError("A custom period requires both 'from' and 'to'")
        span = end - start
        previous = TimeWindow(
            since=to_iso(start - span),
            until=to_iso(start),
            until_exclusive=True,
        )
        return ResolvedPeriod(kind.value, to_iso(start), until, now, previous)

    if kind == MetricsPeriod.ALL:
        since = to_iso(start) if start is not None else None
        return ResolvedPeriod(kind.value, since, until, now, None)

    nominal = timedelta(milliseconds=PERIOD_DURATION_MS[kind])
    anchor = end if end is not None else now
    effective_start = start if start is not None else anchor - nominal
    # The trend window keeps the nominal length even when from_ moves the start
    previous = TimeWindow(
        since=to_iso(effective_start - nominal),
        until=to_iso(effective_start),
        until_exclusive=True,
    )
    return ResolvedPeriod(kind.value, to_iso(effective_start), until, now, previous)
