"""
Content component ports.

Read-only lookups of the portfolio records newsletters announce.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from src.domain.entities import Career, Certificate, Project, Skill


class ProjectRepoPort(Protocol):
    def get_by_id(self, project_id: UUID) -> Project | None:
        """Project with its features loaded."""
        ...


class CertificateRepoPort(Protocol):
    def get_by_id(self, certificate_id: UUID) -> Certificate | None:
        ...


class SkillRepoPort(Protocol):
    def get_by_id(self, skill_id: UUID) -> Skill | None:
        ...


class CareerRepoPort(Protocol):
    def get_by_id(self, career_id: UUID) -> Career | None:
        ...


@dataclass(frozen=True)
class ContentRepos:
    """One repository per content kind."""

    projects: ProjectRepoPort
    certificates: CertificateRepoPort
    skills: SkillRepoPort
    careers: CareerRepoPort
