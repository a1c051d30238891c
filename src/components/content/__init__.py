"""
Content component.

Newsletter content generators for projects, certificates, skills and
career entries.
"""

from src.components.content.component import (
    format_long_date,
    format_month_year,
    format_years,
    generate_career_content,
    generate_certificate_content,
    generate_content,
    generate_project_content,
    generate_skill_content,
)
from src.components.content.models import ContentNotFoundError, NewsletterContent
from src.components.content.ports import (
    CareerRepoPort,
    CertificateRepoPort,
    ContentRepos,
    ProjectRepoPort,
    SkillRepoPort,
)

__all__ = [
    "generate_content",
    "generate_project_content",
    "generate_certificate_content",
    "generate_skill_content",
    "generate_career_content",
    "format_long_date",
    "format_month_year",
    "format_years",
    "ContentNotFoundError",
    "NewsletterContent",
    "ContentRepos",
    "ProjectRepoPort",
    "CertificateRepoPort",
    "SkillRepoPort",
    "CareerRepoPort",
]
