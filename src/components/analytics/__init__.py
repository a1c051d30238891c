"""
Analytics component.

Page view ingest and period-over-period dashboard counts.
"""

from src.components.analytics.component import (
    compute_period_change,
    daily_counts,
    dashboard,
    record_page_view,
    stats_with_change,
    validate_path,
)
from src.components.analytics.models import (
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

__all__ = [
    "record_page_view",
    "validate_path",
    "compute_period_change",
    "stats_with_change",
    "daily_counts",
    "dashboard",
    "METRICS",
    "AnalyticsValidationError",
    "DailyCount",
    "DashboardOutput",
    "MetricStats",
    "PathCount",
    "PeriodChange",
    "RecordPageViewInput",
    "RecordPageViewOutput",
    "MetricCounterPort",
    "PageViewRepoPort",
]
