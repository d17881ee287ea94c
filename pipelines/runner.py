from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import List, Protocol

from models import Guest
from utils.logging_setup import init_logging


logger = logging.getLogger(__name__)


@dataclass
class RunContext:
    guests: List[Guest] = field(default_factory=list)
    # Guests still waiting for enrichment after the cache step
    pending: List[Guest] = field(default_factory=list)
    meta: dict = field(default_factory=dict)


class Step(Protocol):
    def run(self, ctx: RunContext) -> RunContext:
        ...


class Pipeline:
    """Run steps in order over one shared context; a step's exception stops the run."""

    def __init__(self, steps: List[Step]):
        self.steps = steps

    def run(self, ctx: RunContext) -> RunContext:
        init_logging()
        for step in self.steps:
            name = type(step).__name__
            t0 = time.time()
            ctx = step.run(ctx)
            duration_ms = int((time.time() - t0) * 1000)
            ctx.meta.setdefault("step_durations_ms", {})[name] = duration_ms
            logger.debug(f"Step {name} finished", extra={"step": name, "status": "ok", "duration_ms": duration_ms})
        return ctx
