from __future__ import annotations

import logging

from pipelines.runner import RunContext
from ports import ProfileCachePort, ProfileSinkPort


logger = logging.getLogger(__name__)


class DeliverCachedProfiles:
    """Emit every cache hit right away and leave only the misses pending."""

    def __init__(self, cache: ProfileCachePort, sink: ProfileSinkPort) -> None:
        self.cache = cache
        self.sink = sink

    def run(self, ctx: RunContext) -> RunContext:
        hits = self.cache.lookup_batch([g.api_id for g in ctx.guests])
        pending = []
        for guest in ctx.guests:
            profile = hits.get(guest.api_id)
            if profile is None:
                pending.append(guest)
                continue
            self.sink.emit(profile)
        ctx.pending = pending
        ctx.meta["cache_hits"] = len(ctx.guests) - len(pending)
        ctx.meta["delivered"] = ctx.meta.get("delivered", 0) + ctx.meta["cache_hits"]
        logger.info(
            f"Delivered {ctx.meta['cache_hits']} cached profiles; {len(pending)} guests need enrichment",
            extra={"step": "deliver_cached", "status": "ok"},
        )
        return ctx
