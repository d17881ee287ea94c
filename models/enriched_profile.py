from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from models.guest import Guest


class EnrichedProfile(BaseModel):
    """Delivered profile for one guest.

    Optional fields left as None mean "not found" and are omitted on the wire.
    """

    api_id: str
    name: str = ""
    email: str = ""
    bio: str | None = None
    location: str | None = None
    linkedin_url: str | None = None
    twitter_url: str | None = None
    job_title: str | None = None
    company: str | None = None
    company_website: str | None = None
    job_company_twitter_url: str | None = None
    education: str | None = None
    company_summary: str | None = None

    model_config = ConfigDict(frozen=True, extra="ignore")

    @classmethod
    def minimal(cls, guest: Guest, *, with_url: bool = False) -> "EnrichedProfile":
        return cls(
            api_id=guest.api_id,
            name=guest.name,
            email=guest.email,
            linkedin_url=guest.linkedin_url if with_url else None,
        )

    def to_json(self) -> str:
        return self.model_dump_json(exclude_none=True)
