from pydantic import BaseModel, Field, field_validator


class NewsletterRules(BaseModel):
    token_ttl_days: int | None = 365
    token_refresh_days: int = Field(30, ge=0)
    rate_limit_per_ip_per_hour: int = 10
    unsubscribe_path: str = "/unsubscribe"
    confirm_path: str = "/api/newsletter/confirm"
    disposable_email_domains: list[str] = Field(default_factory=list)

    @field_validator("token_ttl_days")
    @classmethod
    def ttl_positive(cls, v: int | None) -> int | None:
        if v is not None and v <= 0:
            raise ValueError("token_ttl_days must be positive or null")
        return v


class DispatchRules(BaseModel):
    max_concurrency: int = Field(5, ge=1, le=100)
    sends_per_second: float = Field(10, gt=0)
    max_attempts: int = Field(3, ge=1, le=10)
    backoff_seconds: list[float] = Field(default_factory=lambda: [1.0, 5.0, 15.0])


class AnnouncementRules(BaseModel):
    project: bool = True
    certificate: bool = True
    skill: bool = True
    career: bool = True

    def is_enabled(self, kind: str) -> bool:
        return bool(getattr(self, kind, False))


class EmailRules(BaseModel):
    site_name: str = "Portfolio"
    default_from: str = "Portfolio <noreply@example.com>"
    default_admin_email: str = "admin@example.com"
    ethereal_host: str = "smtp.ethereal.email"
    ethereal_port: int = 587
    timeout_seconds: float = 30


class AnalyticsRules(BaseModel):
    default_period_days: int = Field(30, ge=1, le=365)


class Rules(BaseModel):
    newsletter: NewsletterRules
    dispatch: DispatchRules
    announcements: AnnouncementRules = Field(default_factory=AnnouncementRules)
    email: EmailRules
    analytics: AnalyticsRules = Field(default_factory=AnalyticsRules)
