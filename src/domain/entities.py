from datetime import UTC, datetime
from typing import Literal
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

# --- Enums / Literals ---
ContentKind = Literal["project", "certificate", "skill", "career"]
CONTENT_KINDS: tuple[str, ...] = ("project", "certificate", "skill", "career")
UserStatus = Literal["active", "disabled"]


def _utcnow() -> datetime:
    return datetime.now(UTC)


# --- User & Auth ---

class User(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    email: str
    display_name: str
    password_hash: str
    status: UserStatus = "active"
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

# --- Portfolio content (inputs to newsletter generators) ---

class ProjectFeature(BaseModel):
    name: str
    description: str | None = None

class Project(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    title: str
    description: str = ""
    technologies: list[str] = Field(default_factory=list)
    image_url: str | None = None
    features: list[ProjectFeature] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)

class Certificate(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    name: str
    issuer: str
    date: datetime
    image_url: str | None = None
    link: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)

class Skill(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    name: str
    category: str
    level: str
    years: int = 0
    created_at: datetime = Field(default_factory=_utcnow)

class Career(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    position: str
    company: str
    start_date: datetime
    end_date: datetime | None = None
    location: str | None = None
    description: str = ""
    logo_url: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)

# --- Analytics ---

class PageView(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    path: str
    created_at: datetime = Field(default_factory=_utcnow)
