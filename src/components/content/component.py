"""
Content generators.

Turn one portfolio record into newsletter content (subject, HTML body,
kind). Output is deterministic for a given record and base URL. Record
text is escaped; the result is a fragment the dispatcher wraps with the
per-recipient footer.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from html import escape
from uuid import UUID

from src.components.content.models import ContentNotFoundError, NewsletterContent
from src.components.content.ports import (
    CareerRepoPort,
    CertificateRepoPort,
    ContentRepos,
    ProjectRepoPort,
    SkillRepoPort,
)

logger = logging.getLogger(__name__)

_H2 = "color: #333; border-bottom: 1px solid #eee; padding-bottom: 10px;"
_H3 = "color: #444; margin-top: 20px;"
_BOX = "background-color: #f9f9f9; padding: 15px; border-radius: 5px; margin: 20px 0;"
_BUTTON = (
    "background-color: #7c3aed; color: white; padding: 12px 24px; text-decoration: none; "
    "border-radius: 4px; display: inline-block; font-weight: bold;"
)
_LINK = "color: #5b21b6;"


# --- Formatting helpers ---


def format_long_date(value: datetime) -> str:
    """e.g. 'March 5, 2024'."""
    return f"{value:%B} {value.day}, {value.year}"


def format_month_year(value: datetime) -> str:
    """e.g. 'March 2024'."""
    return f"{value:%B} {value.year}"


def format_years(years: int) -> str:
    return "1 year" if years == 1 else f"{years} years"


def _image(url: str | None, alt: str, style: str) -> str:
    if not url:
        return ""
    return (
        '<div style="text-align: center; margin: 20px 0;">'
        f'<img src="{escape(url, quote=True)}" alt="{escape(alt, quote=True)}" style="{style}">'
        "</div>"
    )


_HERO_STYLE = "max-width: 100%; border-radius: 8px; max-height: 300px; object-fit: cover;"
_LOGO_STYLE = "max-width: 200px; max-height: 100px; object-fit: contain;"


# --- Generators ---


def generate_project_content(
    project_id: UUID,
    *,
    repo: ProjectRepoPort,
    base_url: str,
) -> NewsletterContent:
    """
    Announce a new project.

    Raises:
        ContentNotFoundError: no project with this id
    """
    project = repo.get_by_id(project_id)
    if project is None:
        raise ContentNotFoundError("project", project_id)

    project_url = f"{base_url.rstrip('/')}/projects/{project.id}"
    title = escape(project.title)

    features = ""
    if project.features:
        items = "".join(
            f'<li style="margin-bottom: 8px;"><strong>{escape(f.name)}</strong>'
            f"{': ' + escape(f.description) if f.description else ''}</li>"
            for f in project.features
        )
        features = (
            f'<h3 style="{_H3}">Key Features</h3>'
            f'<ul style="padding-left: 20px;">{items}</ul>'
        )

    content = (
        f'<h2 style="{_H2}">New Project: {title}</h2>'
        '<div style="margin: 20px 0;">'
        "<p>I'm excited to share my latest project with you!</p>"
        f"{_image(project.image_url, project.title, _HERO_STYLE)}"
        f'<h3 style="{_H3}">About the Project</h3>'
        f"<p>{escape(project.description)}</p>"
        '<div style="margin: 15px 0;"><strong>Technologies used:</strong> '
        f"{escape(', '.join(project.technologies))}</div>"
        f"{features}"
        "</div>"
        '<div style="text-align: center; margin: 30px 0;">'
        f'<a href="{escape(project_url, quote=True)}" style="{_BUTTON}">View Project Details</a>'
        "</div>"
    )

    return NewsletterContent(
        subject=f"New Project: {project.title}",
        content=content,
        type="project",
        project_id=project.id,
    )


def generate_certificate_content(
    certificate_id: UUID,
    *,
    repo: CertificateRepoPort,
    base_url: str,
) -> NewsletterContent:
    certificate = repo.get_by_id(certificate_id)
    if certificate is None:
        raise ContentNotFoundError("certificate", certificate_id)

    link = ""
    if certificate.link:
        link = (
            '<p style="margin-bottom: 0;"><strong>Verification:</strong> '
            f'<a href="{escape(certificate.link, quote=True)}" style="{_LINK}">'
            "View Certificate</a></p>"
        )

    content = (
        f'<h2 style="{_H2}">New Certificate: {escape(certificate.name)}</h2>'
        '<div style="margin: 20px 0;">'
        "<p>I'm pleased to share that I've earned a new certification!</p>"
        f"{_image(certificate.image_url, certificate.name, _HERO_STYLE)}"
        f'<div style="{_BOX}">'
        f'<p style="margin-top: 0;"><strong>Certificate:</strong> {escape(certificate.name)}</p>'
        f'<p style="margin-bottom: 0;"><strong>Issuer:</strong> {escape(certificate.issuer)}</p>'
        '<p style="margin-bottom: 0;"><strong>Date:</strong> '
        f"{format_long_date(certificate.date)}</p>"
        f"{link}"
        "</div>"
        "<p>This certification represents my commitment to continuous learning "
        "and professional development.</p>"
        "</div>"
    )

    return NewsletterContent(
        subject=f"New Certificate: {certificate.name}",
        content=content,
        type="certificate",
    )


def generate_skill_content(
    skill_id: UUID,
    *,
    repo: SkillRepoPort,
    base_url: str,
) -> NewsletterContent:
    skill = repo.get_by_id(skill_id)
    if skill is None:
        raise ContentNotFoundError("skill", skill_id)

    content = (
        f'<h2 style="{_H2}">New Skill: {escape(skill.name)}</h2>'
        '<div style="margin: 20px 0;">'
        "<p>I've recently added a new skill to my portfolio!</p>"
        f'<div style="{_BOX}">'
        f'<p style="margin-top: 0;"><strong>Skill:</strong> {escape(skill.name)}</p>'
        f'<p style="margin-bottom: 0;"><strong>Category:</strong> {escape(skill.category)}</p>'
        f'<p style="margin-bottom: 0;"><strong>Level:</strong> {escape(skill.level)}</p>'
        '<p style="margin-bottom: 0;"><strong>Experience:</strong> '
        f"{format_years(skill.years)}</p>"
        "</div>"
        "<p>I'm excited to apply this skill to future projects and continue "
        "expanding my expertise.</p>"
        "</div>"
    )

    return NewsletterContent(
        subject=f"New Skill Added: {skill.name}",
        content=content,
        type="skill",
    )


def generate_career_content(
    career_id: UUID,
    *,
    repo: CareerRepoPort,
    base_url: str,
) -> NewsletterContent:
    career = repo.get_by_id(career_id)
    if career is None:
        raise ContentNotFoundError("career", career_id)

    location = ""
    if career.location:
        location = (
            '<p style="margin-bottom: 0;"><strong>Location:</strong> '
            f"{escape(career.location)}</p>"
        )

    content = (
        f'<h2 style="{_H2}">Career Update: {escape(career.position)} at '
        f"{escape(career.company)}</h2>"
        '<div style="margin: 20px 0;">'
        "<p>I'm excited to share a new update in my professional journey!</p>"
        f"{_image(career.logo_url, f'{career.company} logo', _LOGO_STYLE)}"
        f'<div style="{_BOX}">'
        f'<p style="margin-top: 0;"><strong>Position:</strong> {escape(career.position)}</p>'
        f'<p style="margin-bottom: 0;"><strong>Company:</strong> {escape(career.company)}</p>'
        '<p style="margin-bottom: 0;"><strong>Started:</strong> '
        f"{format_month_year(career.start_date)}</p>"
        f"{location}"
        "</div>"
        f'<h3 style="{_H3}">About the Role</h3>'
        f"<p>{escape(career.description)}</p>"
        "</div>"
    )

    return NewsletterContent(
        subject=f"Career Update: {career.position} at {career.company}",
        content=content,
        type="career",
    )


def generate_content(
    kind: str,
    content_id: UUID,
    *,
    repos: ContentRepos,
    base_url: str,
) -> NewsletterContent:
    """
    Generate content for any kind.

    Raises:
        ValueError: unknown kind
        ContentNotFoundError: no record with this id
    """
    generators: dict[str, tuple[Callable[..., NewsletterContent], object]] = {
        "project": (generate_project_content, repos.projects),
        "certificate": (generate_certificate_content, repos.certificates),
        "skill": (generate_skill_content, repos.skills),
        "career": (generate_career_content, repos.careers),
    }
    if kind not in generators:
        raise ValueError(f"Unknown content kind: {kind}")

    generator, repo = generators[kind]
    content = generator(content_id, repo=repo, base_url=base_url)
    logger.debug("Generated %s newsletter content for %s", kind, content_id)
    return content
