"""
Analytics component port definitions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from src.domain.entities import PageView


class PageViewRepoPort(Protocol):
    def save(self, view: PageView) -> PageView:
        ...


class MetricCounterPort(Protocol):
    """Counts records created within a time range."""

    def count(
        self,
        metric: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> int:
        """
        Count records of a metric.

        start is inclusive, end is exclusive; None leaves that side open.
        """
        ...

    def top_paths(self, start: datetime, end: datetime, limit: int = 10) -> list[tuple[str, int]]:
        """Most viewed paths in [start, end), most views first."""
        ...
