from .guest import Guest
from .enriched_profile import EnrichedProfile
from .cache_record import CacheRecord
from .guest_view import Decision, GuestView

__all__ = [
    "Guest",
    "EnrichedProfile",
    "CacheRecord",
    "Decision",
    "GuestView",
]
