"""
Analytics component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

Metric = Literal[
    "pageviews",
    "subscribers",
    "newsletters",
    "projects",
    "certificates",
    "skills",
    "careers",
]
METRICS: tuple[str, ...] = (
    "pageviews",
    "subscribers",
    "newsletters",
    "projects",
    "certificates",
    "skills",
    "careers",
)

MAX_PATH_LENGTH = 2048


@dataclass(frozen=True)
class AnalyticsValidationError:
    """Analytics validation error."""

    code: str
    message: str
    field_name: str | None = None


# --- Input / Output ---


@dataclass(frozen=True)
class RecordPageViewInput:
    path: str


@dataclass(frozen=True)
class RecordPageViewOutput:
    success: bool
    errors: list[AnalyticsValidationError] = field(default_factory=list)


@dataclass(frozen=True)
class PeriodChange:
    """Difference between two consecutive periods."""

    change: int
    percentage: int


@dataclass(frozen=True)
class MetricStats:
    """All-time count plus the change of the last period over the one before."""

    count: int
    change: int
    percentage: int


@dataclass(frozen=True)
class DailyCount:
    date: str  # YYYY-MM-DD
    count: int


@dataclass(frozen=True)
class PathCount:
    path: str
    count: int


@dataclass(frozen=True)
class DashboardOutput:
    days: int
    stats: dict[str, MetricStats]
    daily_pageviews: list[DailyCount]
    top_pages: list[PathCount]
