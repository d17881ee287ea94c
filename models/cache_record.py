from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from models.enriched_profile import EnrichedProfile


class CacheRecord(BaseModel):
    """Stored cache row: one serialized profile per guest id."""

    api_id: str
    document: str
    updated_at: int

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_profile(cls, profile: EnrichedProfile, updated_at: int) -> "CacheRecord":
        return cls(api_id=profile.api_id, document=profile.to_json(), updated_at=updated_at)

    def to_profile(self) -> EnrichedProfile:
        return EnrichedProfile.model_validate_json(self.document)
