"""Chunk-and-sum helpers turning daily download series into weekly (or N-day) buckets."""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import TypeVar

T = TypeVar("T")

DEFAULT_BUCKET_SIZE = 7


@dataclass(frozen=True)
class Bucket:
    period_start: str
    period_end: str
    total: float


def chunk(items: Sequence[T], size: int = DEFAULT_BUCKET_SIZE) -> list[list[T]]:
    """Contiguous slices of `size` items; the last one may be shorter."""
    if size < 1:
        raise ValueError(f"chunk size must be >= 1, got {size}")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


def aggregate_into_buckets(
    daily: Sequence[tuple[str, float]],
    bucket_size: int = DEFAULT_BUCKET_SIZE,
) -> list[Bucket]:
    """
    Sum a chronological (label, value) series into fixed-size buckets.

    Each bucket reports its first label, last label and total. 9 days with
    bucket_size=7 give two buckets (7 days + 2 days). Empty input gives [].
    """
    buckets: list[Bucket] = []
    for group in chunk(daily, bucket_size):
        buckets.append(
            Bucket(
                period_start=group[0][0],
                period_end=group[-1][0],
                total=sum(v for _, v in group),
            )
        )
    return buckets


def build_weekly_evolution_from_daily(daily: Sequence[dict[str, object]]) -> list[dict[str, object]]:
    """[{"day", "downloads"}] -> [{"week_start", "week_end", "downloads"}]."""
    pairs = [(str(d.get("day", "")), d.get("downloads", 0)) for d in daily]
    return [
        {"week_start": b.period_start, "week_end": b.period_end, "downloads": b.total}
        for b in aggregate_into_buckets(pairs, DEFAULT_BUCKET_SIZE)
    ]


def add_days(value: date | datetime, days: int) -> date | datetime:
    """
    Shift by whole calendar days in UTC. Returns a new value.

    Naive datetimes are treated as UTC; aware datetimes are converted to UTC first
    so DST transitions in the source zone do not move the wall clock.
    """
    if isinstance(value, datetime) and value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value + timedelta(days=days)
