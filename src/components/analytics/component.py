"""
Analytics component - page view ingest and period-over-period counts.

Every metric is a count of records by creation time. Stats compare the
last `days` days against the `days` before that.

Invariants:
- Page view paths are site-relative ("/...") and bounded in length
- percentage is 100 when the previous period was empty and the count grew,
  0 when it was empty and nothing changed
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, time, timedelta

from src.components.analytics.models import (
    MAX_PATH_LENGTH,
    METRICS,
    AnalyticsValidationError,
    DailyCount,
    DashboardOutput,
    MetricStats,
    PathCount,
    PeriodChange,
    RecordPageViewInput,
    RecordPageViewOutput,
)
from src.components.analytics.ports import MetricCounterPort, PageViewRepoPort
from src.domain.entities import PageView

logger = logging.getLogger(__name__)


def validate_path(path: str) -> list[AnalyticsValidationError]:
    if not path:
        return [AnalyticsValidationError("MISSING_PATH", "Path is required", "path")]
    if not path.startswith("/"):
        return [AnalyticsValidationError("INVALID_PATH", "Path must start with '/'", "path")]
    if len(path) > MAX_PATH_LENGTH:
        return [AnalyticsValidationError("PATH_TOO_LONG", "Path is too long", "path")]
    return []


def record_page_view(
    inp: RecordPageViewInput,
    repo: PageViewRepoPort,
    now: datetime | None = None,
) -> RecordPageViewOutput:
    errors = validate_path(inp.path)
    if errors:
        return RecordPageViewOutput(success=False, errors=errors)

    repo.save(PageView(path=inp.path, created_at=now or datetime.now(UTC)))
    return RecordPageViewOutput(success=True)


def compute_period_change(current: int, previous: int) -> PeriodChange:
    change = current - previous
    if previous == 0:
        percentage = 100 if change > 0 else 0
    else:
        percentage = round(change / previous * 100)
    return PeriodChange(change=change, percentage=percentage)


def stats_with_change(
    counter: MetricCounterPort,
    metric: str,
    days: int,
    now: datetime | None = None,
) -> MetricStats:
    if metric not in METRICS:
        raise ValueError(f"Unknown metric: {metric}")
    now = now or datetime.now(UTC)
    period_start = now - timedelta(days=days)
    previous_start = period_start - timedelta(days=days)

    total = counter.count(metric)
    current = counter.count(metric, start=period_start, end=now + timedelta(seconds=1))
    previous = counter.count(metric, start=previous_start, end=period_start)

    delta = compute_period_change(current, previous)
    return MetricStats(count=total, change=delta.change, percentage=delta.percentage)


def daily_counts(
    counter: MetricCounterPort,
    metric: str,
    days: int,
    now: datetime | None = None,
) -> list[DailyCount]:
    """One entry per UTC calendar day, oldest first, today last."""
    now = now or datetime.now(UTC)
    today = now.astimezone(UTC).date()
    result = []
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        start = datetime.combine(day, time.min, tzinfo=UTC)
        result.append(
            DailyCount(
                date=day.isoformat(),
                count=counter.count(metric, start=start, end=start + timedelta(days=1)),
            )
        )
    return result


def dashboard(
    counter: MetricCounterPort,
    days: int = 30,
    now: datetime | None = None,
    top_limit: int = 10,
) -> DashboardOutput:
    """Stats for every metric, daily page views and the most viewed pages."""
    now = now or datetime.now(UTC)
    stats = {metric: stats_with_change(counter, metric, days, now) for metric in METRICS}
    top = counter.top_paths(now - timedelta(days=days), now + timedelta(seconds=1), top_limit)
    return DashboardOutput(
        days=days,
        stats=stats,
        daily_pageviews=daily_counts(counter, "pageviews", days, now),
        top_pages=[PathCount(path=p, count=c) for p, c in top],
    )
