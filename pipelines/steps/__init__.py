# Namespace for pipeline steps
from .deliver_cached import DeliverCachedProfiles  # noqa: F401
from .enrich_batches import EnrichGuestBatches  # noqa: F401
