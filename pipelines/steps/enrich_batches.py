from __future__ import annotations

import concurrent.futures as _fut
import logging
import time
from typing import Callable, List, Optional, Sequence

from models import EnrichedProfile, Guest
from pipelines.runner import RunContext
from ports import ProfileCachePort, ProfileSinkPort
from services.company_summary import CompanySummarizer
from services.content_extraction import ContentExtractionAdapter
from utils.batching import chunked


logger = logging.getLogger(__name__)


class EnrichGuestBatches:
    """Enrich pending guests batch by batch and hand each batch to the sink.

    Batches run strictly one after another with a pacing delay in between.
    Inside a batch the company summaries run in parallel. After a batch is
    emitted its cache write is handed to ``background`` and not awaited.
    """

    def __init__(
        self,
        extractor: ContentExtractionAdapter,
        summarizer: CompanySummarizer,
        cache: ProfileCachePort,
        sink: ProfileSinkPort,
        background: _fut.Executor,
        batch_size: int = 50,
        delay_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.extractor = extractor
        self.summarizer = summarizer
        self.cache = cache
        self.sink = sink
        self.background = background
        self.batch_size = batch_size
        self.delay_seconds = delay_seconds
        self.sleep = sleep

    def run(self, ctx: RunContext) -> RunContext:
        batches = chunked(ctx.pending, self.batch_size)
        ctx.meta["batches"] = len(batches)
        ctx.meta.setdefault("enriched", 0)
        ctx.meta.setdefault("fallbacks", 0)
        ctx.meta.setdefault("cache_writes", [])

        for idx, batch in enumerate(batches, start=1):
            label = f"{idx}/{len(batches)}"
            if idx > 1 and self.delay_seconds > 0:
                self.sleep(self.delay_seconds)

            t0 = time.time()
            cacheable = True
            try:
                profiles = self.enrich_batch(batch)
                ctx.meta["enriched"] += len(profiles)
            except Exception as e:
                logger.error(
                    f"Batch enrichment failed; sending minimal profiles for {len(batch)} guests",
                    extra={"step": "enrich_batch", "status": "fallback", "batch": label, "error": str(e)},
                )
                profiles = [EnrichedProfile.minimal(g) for g in batch]
                ctx.meta["fallbacks"] += len(profiles)
                cacheable = False

            # Transport errors from the sink are fatal and propagate
            for profile in profiles:
                self.sink.emit(profile)
            ctx.meta["delivered"] = ctx.meta.get("delivered", 0) + len(profiles)
            logger.info(
                f"Delivered batch of {len(profiles)} profiles",
                extra={"step": "enrich_batch", "status": "ok", "batch": label, "duration_ms": int((time.time() - t0) * 1000)},
            )

            if cacheable:
                ctx.meta["cache_writes"].append(self.schedule_cache_write(profiles, label))
        return ctx

    def enrich_batch(self, batch: Sequence[Guest]) -> List[EnrichedProfile]:
        profiles = self.extractor.fetch_and_extract(batch, fallback_on_error=False)

        profiles = [
            p.model_copy(update={"company_website": self.summarizer.infer_website(p.email)})
            if not p.company_website and p.email
            else p
            for p in profiles
        ]

        summaries = self.summarize_all(profiles)
        return [
            p.model_copy(update={"company_summary": summary}) if summary else p
            for p, summary in zip(profiles, summaries)
        ]

    def summarize_all(self, profiles: Sequence[EnrichedProfile]) -> List[Optional[str]]:
        summaries: List[Optional[str]] = [None] * len(profiles)
        targets = [(i, p.company_website) for i, p in enumerate(profiles) if p.company_website]
        if not targets:
            return summaries
        with _fut.ThreadPoolExecutor(max_workers=min(len(targets), self.batch_size)) as ex:
            futures = {ex.submit(self._summarize_one, website): i for i, website in targets}
            for fut in _fut.as_completed(futures):
                summaries[futures[fut]] = fut.result()
        return summaries

    def _summarize_one(self, website: str) -> Optional[str]:
        try:
            return self.summarizer.summarize(website)
        except Exception as e:
            logger.warning(
                f"Company summary failed for {website}",
                extra={"step": "summary", "status": "error", "error": str(e)},
            )
            return None

    def schedule_cache_write(self, profiles: Sequence[EnrichedProfile], label: str) -> _fut.Future:
        future = self.background.submit(self.cache.write_batch, list(profiles))

        def _log_failure(f: _fut.Future) -> None:
            if f.cancelled():
                return
            exc = f.exception()
            if exc is not None:
                logger.error(
                    "Background cache write failed",
                    extra={"step": "cache_write", "status": "error", "batch": label, "error": str(exc)},
                )

        future.add_done_callback(_log_failure)
        return future
