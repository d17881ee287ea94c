from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict

from models.enriched_profile import EnrichedProfile
from models.guest import Guest


class Decision(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"


class GuestView(BaseModel):
    """Consumer-side record: a guest, its latest delivered profile and a review decision."""

    guest: Guest
    enriched: EnrichedProfile | None = None
    decision: Decision = Decision.PENDING

    model_config = ConfigDict(frozen=True)
