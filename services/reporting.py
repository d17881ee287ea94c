from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from typing import Dict, Optional, Sequence, TextIO

from config.settings import Settings, get_settings
from models import Decision, GuestView
from services.review import count_decisions


def _llm_usage_for_run(run_id: str, settings: Settings) -> Dict[str, Dict[str, int]]:
    """Aggregate LLM usage from the trace JSONL for the given run_id.

    Returns dict like { 'openai': {'calls': N, 'tokens': T} }
    """
    result: Dict[str, Dict[str, int]] = {}
    log_path = Path(settings.llm_log_path)
    if not log_path.exists():
        return result
    with log_path.open("r", encoding="utf-8") as f:
        for line in f:
            try:
                rec = json.loads(line)
            except json.JSONDecodeError:
                continue
            if not isinstance(rec, dict) or rec.get("run_id") != run_id:
                continue
            provider = rec.get("provider") or "unknown"
            usage = rec.get("usage") or {}
            bucket = result.setdefault(provider, {"calls": 0, "tokens": 0})
            bucket["calls"] += 1
            bucket["tokens"] += int(usage.get("total_tokens") or 0)
    return result


def print_summary(meta: dict, out: Optional[TextIO] = None, output_path: Optional[Path] = None) -> None:
    """Print a summary of one enrichment run."""
    out = out or sys.stderr
    settings = get_settings()

    print("\n" + "=" * 60, file=out)
    print("GUEST ENRICHMENT - SUMMARY", file=out)
    print("=" * 60, file=out)
    print(f"Guests: {meta.get('guests', 0)}", file=out)
    print(f"Delivered: {meta.get('delivered', 0)}", file=out)
    print(f"  From cache: {meta.get('cache_hits', 0)}", file=out)
    print(f"  Enriched: {meta.get('enriched', 0)}", file=out)
    print(f"  Fallback (minimal): {meta.get('fallbacks', 0)}", file=out)
    print(f"Batches: {meta.get('batches', 0)}", file=out)
    if meta.get("duration_ms") is not None:
        print(f"Duration: {meta['duration_ms'] / 1000:.1f}s", file=out)
    if meta.get("error"):
        print(f"Aborted: {meta['error']}", file=out)
    # LLM usage summary (per provider) for current RUN_ID if tracing enabled
    run_id = os.getenv("RUN_ID")
    if run_id and settings.llm_trace:
        usage = _llm_usage_for_run(run_id, settings)
        if usage:
            print("LLM Usage:", file=out)
            for provider, stats in usage.items():
                print(f"  {provider}: calls={stats.get('calls', 0)}, tokens={stats.get('tokens', 0)}", file=out)
    if output_path:
        print(f"Output File: {output_path}", file=out)
    print("=" * 60, file=out)


def print_review(views: Dict[str, GuestView], keywords: Sequence[str], out: Optional[TextIO] = None) -> None:
    """Print the review tally after keyword filtering, listing auto-denied guests."""
    out = out or sys.stderr
    counts = count_decisions(views)
    print(f"Review (reject keywords: {', '.join(keywords)})", file=out)
    for decision in Decision:
        print(f"  {decision.value.capitalize()}: {counts[decision]}", file=out)
    denied = [v for v in views.values() if v.decision is Decision.DENIED]
    for view in denied:
        company = view.enriched.company if view.enriched is not None else None
        print(f"  - denied {view.guest.api_id} {view.guest.name}" + (f" ({company})" if company else ""), file=out)
