from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field


class Guest(BaseModel):
    """Input record for one event guest.

    Known columns are explicit fields; every other input column is kept in
    ``extra`` untouched so callers can round-trip their own data.
    """

    api_id: str
    name: str = ""
    email: str = ""
    linkedin_url: str | None = None
    extra: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)
