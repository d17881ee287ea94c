from __future__ import annotations

import concurrent.futures as _fut
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

import requests
from exa_py import Exa

from config.settings import Settings, get_settings
from models import Guest
from pipelines.runner import Pipeline, RunContext
from pipelines.steps import DeliverCachedProfiles, EnrichGuestBatches
from ports import ProfileCachePort, ProfileSinkPort
from services.company_summary import CompanySummarizer
from services.content_extraction import ContentExtractionAdapter
from services.delivery import ProfileStream
from services.llm_client import LLMClient
from services.profile_cache import ProfileCache


logger = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """Provider credentials or settings needed to build the services are missing."""


@dataclass
class EnrichmentServices:
    """Provider adapters shared by every run in this process."""

    cache: ProfileCachePort
    extractor: ContentExtractionAdapter
    summarizer: CompanySummarizer
    # Runs detached cache writes; owned by the caller, drained at shutdown
    background: _fut.Executor


def build_services(settings: Optional[Settings] = None) -> EnrichmentServices:
    """Construct provider clients once from settings."""
    settings = settings or get_settings()
    if not settings.exa_api_key:
        raise ConfigurationError("EXA_API_KEY is required to fetch profile contents")

    session = requests.Session()
    cache = ProfileCache(settings.db_path, chunk_size=settings.cache_chunk_size)
    cache.bootstrap()
    return EnrichmentServices(
        cache=cache,
        extractor=ContentExtractionAdapter(Exa(api_key=settings.exa_api_key)),
        summarizer=CompanySummarizer(LLMClient(settings), session=session, settings=settings),
        background=_fut.ThreadPoolExecutor(max_workers=1, thread_name_prefix="cache-writer"),
    )


def build_pipeline(
    services: EnrichmentServices,
    sink: ProfileSinkPort,
    settings: Optional[Settings] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Pipeline:
    settings = settings or get_settings()
    return Pipeline([
        DeliverCachedProfiles(services.cache, sink),
        EnrichGuestBatches(
            services.extractor,
            services.summarizer,
            services.cache,
            sink,
            services.background,
            batch_size=settings.enrich_batch_size,
            delay_seconds=settings.batch_delay_seconds,
            sleep=sleep,
        ),
    ])


def run_enrichment(
    guests: Sequence[Guest],
    sink: ProfileSinkPort,
    services: EnrichmentServices,
    settings: Optional[Settings] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> RunContext:
    """Deliver a profile for every guest into ``sink``, then close it.

    Cache hits go out first, then enriched batches in submission order.
    Anything that escapes the pipeline (a transport failure) tears the sink
    down with ``fail`` instead of ``close``.
    """
    ctx = RunContext(guests=list(guests))
    t0 = time.time()
    try:
        ctx = build_pipeline(services, sink, settings, sleep).run(ctx)
        sink.close()
    except Exception as e:
        logger.error(
            "Enrichment stream aborted",
            extra={"step": "enrich", "status": "error", "error": str(e)},
        )
        ctx.meta["error"] = str(e)
        sink.fail(e)
        return ctx
    ctx.meta["duration_ms"] = int((time.time() - t0) * 1000)
    logger.info(
        f"Enrichment stream closed after {ctx.meta.get('delivered', 0)} profiles",
        extra={"step": "enrich", "status": "ok", "duration_ms": ctx.meta["duration_ms"]},
    )
    return ctx


class EnrichmentRun:
    """One request: the pipeline runs on a producer thread while the caller reads ``stream``."""

    def __init__(
        self,
        guests: Sequence[Guest],
        services: EnrichmentServices,
        settings: Optional[Settings] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.stream = ProfileStream()
        self.context: Optional[RunContext] = None
        self._args = (list(guests), self.stream, services, settings, sleep)
        self._thread = threading.Thread(target=self._run, name="enrichment-run", daemon=True)

    def _run(self) -> None:
        self.context = run_enrichment(*self._args)

    def start(self) -> "EnrichmentRun":
        self._thread.start()
        return self

    def wait(self, timeout: Optional[float] = None) -> Optional[RunContext]:
        self._thread.join(timeout)
        return self.context
