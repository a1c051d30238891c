"""
Mailer component ports.
"""

from __future__ import annotations

from typing import Protocol

from src.components.mailer.models import EmailSettings


class EmailSettingsRepoPort(Protocol):
    """Email settings storage. At most one row is used."""

    def get(self) -> EmailSettings | None:
        """Return the first settings row, if any."""
        ...

    def save(self, settings: EmailSettings) -> EmailSettings:
        """Insert or update; assigns the id on insert."""
        ...
