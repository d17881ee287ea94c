from __future__ import annotations

import logging
import re
import time
from typing import Any, Dict, List, Optional, Sequence

from models import EnrichedProfile, Guest
from ports import ContentsClientPort


logger = logging.getLogger(__name__)


# Labeled lines in the provider's profile text -> EnrichedProfile field.
# The labels are the provider's, not ours: "Position:" carries the headline
# (stored as bio) and "type:" carries the current role title.
PROFILE_MARKERS: tuple[tuple[str, str], ...] = (
    ("Position:", "bio"),
    ("Location:", "location"),
    ("employer:", "company"),
    ("type:", "job_title"),
    ("Institution:", "education"),
)

_MARKER_PATTERNS = [(re.compile(re.escape(marker) + r"(.*)"), field) for marker, field in PROFILE_MARKERS]


class ContentFetchError(RuntimeError):
    """The bulk contents call for a batch failed."""


def extract_profile_fields(text: str) -> Dict[str, str]:
    """Parse labeled profile attributes out of raw page text.

    For each marker the first occurrence wins and its value is the rest of
    that line, trimmed. Missing markers (or empty values) leave the field out.
    """
    fields: Dict[str, str] = {}
    if not text:
        return fields
    for pattern, field in _MARKER_PATTERNS:
        m = pattern.search(text)
        if not m:
            continue
        value = m.group(1).strip()
        if value:
            fields[field] = value
    return fields


class ContentExtractionAdapter:
    def __init__(self, client: ContentsClientPort) -> None:
        self.client = client

    def fetch_texts(self, urls: Sequence[str]) -> Dict[str, str]:
        """One bulk contents call; returns url -> text for every result with text."""
        if not urls:
            return {}
        t0 = time.time()
        try:
            result = self.client.get_contents(list(urls), text=True)
        except Exception as e:
            logger.error(
                f"Contents fetch failed for {len(urls)} urls",
                extra={"step": "extract", "status": "error", "provider": "exa", "error": str(e)},
            )
            raise ContentFetchError(str(e)) from e

        texts: Dict[str, str] = {}
        for item in getattr(result, "results", None) or []:
            text = getattr(item, "text", None)
            if not text:
                continue
            # Results are matched back by the id we asked for and by the resolved url
            for key in (getattr(item, "id", None), getattr(item, "url", None)):
                if key:
                    texts.setdefault(key, text)
        logger.info(
            f"Contents fetched: {len(texts)} texts for {len(urls)} urls",
            extra={
                "step": "extract",
                "status": "ok",
                "provider": "exa",
                "duration_ms": int((time.time() - t0) * 1000),
            },
        )
        return texts

    def fetch_and_extract(self, guests: Sequence[Guest], *, fallback_on_error: bool = True) -> List[EnrichedProfile]:
        """Return one partial profile per guest, in input order.

        Guests without a profile URL never reach the provider. When the bulk
        call fails, every guest gets a minimal profile (with its URL) unless
        ``fallback_on_error`` is False, in which case ContentFetchError is raised.
        """
        urls = list(dict.fromkeys(g.linkedin_url for g in guests if g.linkedin_url))
        try:
            texts = self.fetch_texts(urls)
        except ContentFetchError:
            if not fallback_on_error:
                raise
            return [EnrichedProfile.minimal(g, with_url=True) for g in guests]

        return [self._profile_for(g, texts) for g in guests]

    @staticmethod
    def _profile_for(guest: Guest, texts: Dict[str, str]) -> EnrichedProfile:
        if not guest.linkedin_url:
            return EnrichedProfile.minimal(guest)
        text: Optional[str] = texts.get(guest.linkedin_url)
        if not text:
            return EnrichedProfile.minimal(guest, with_url=True)
        fields: Dict[str, Any] = extract_profile_fields(text)
        return EnrichedProfile(
            api_id=guest.api_id,
            name=guest.name,
            email=guest.email,
            linkedin_url=guest.linkedin_url,
            **fields,
        )
