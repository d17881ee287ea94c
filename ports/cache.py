from __future__ import annotations

from typing import Dict, Iterable, Optional, Protocol, Sequence

from models import EnrichedProfile


class ProfileCachePort(Protocol):
    def lookup_batch(self, api_ids: Iterable[str]) -> Dict[str, EnrichedProfile]:
        ...

    def write_batch(self, profiles: Sequence[EnrichedProfile]) -> None:
        ...

    def get(self, api_id: str) -> Optional[EnrichedProfile]:
        ...
