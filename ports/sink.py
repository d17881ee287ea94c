from __future__ import annotations

from typing import Protocol

from models import EnrichedProfile


class ProfileSinkPort(Protocol):
    def emit(self, profile: EnrichedProfile) -> None:
        ...

    def close(self) -> None:
        ...

    def fail(self, exc: BaseException) -> None:
        ...
