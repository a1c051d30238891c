"""
Content component models.

Newsletter content generated from portfolio records.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from src.domain.entities import ContentKind


@dataclass(frozen=True)
class NewsletterContent:
    """A ready-to-send newsletter body for one content record."""

    subject: str
    content: str  # HTML fragment
    type: ContentKind
    project_id: UUID | None = None


class ContentNotFoundError(Exception):
    """The referenced content record does not exist."""

    def __init__(self, kind: str, content_id: UUID | str) -> None:
        self.kind = kind
        self.content_id = content_id
        super().__init__(f"{kind.capitalize()} not found: {content_id}")
