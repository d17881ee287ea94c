import argparse
import json
import os
import sys
import uuid as _uuid
from dataclasses import replace
from pathlib import Path
from typing import Iterable, Iterator, List

from config.settings import get_settings
from pipelines.enrich_guests import ConfigurationError, EnrichmentRun, build_services
from services.delivery import StreamAbortedError, iter_profiles, write_chunks
from services.mapping import MalformedRequestError, load_guests_file
from services.profile_cache import ProfileCache
from services.reporting import print_review, print_summary
from services.review import apply_keyword_filters, build_views, merge_profiles
from utils.logging_setup import init_logging


def _tee(chunks: Iterable[bytes], sink: List[bytes]) -> Iterator[bytes]:
    for chunk in chunks:
        sink.append(chunk)
        yield chunk


def cmd_bootstrap(args):
    ProfileCache(args.db).bootstrap()
    print("Schema ready")


def cmd_enrich(args):
    settings = replace(get_settings(), db_path=args.db)
    if not os.getenv("RUN_ID"):
        os.environ["RUN_ID"] = _uuid.uuid4().hex

    # A malformed request fails before anything is streamed
    try:
        guests = load_guests_file(Path(args.input), args.linkedin_column)
    except MalformedRequestError as e:
        print(f"Invalid guest list: {e}", file=sys.stderr)
        sys.exit(2)

    try:
        services = build_services(settings)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    run = EnrichmentRun(guests, services, settings).start()
    delivered: List[bytes] = []
    chunks = _tee(run.stream, delivered) if args.reject_keyword else run.stream
    output_path = Path(args.output) if args.output else None
    out = output_path.open("wb") if output_path else sys.stdout.buffer
    status = 0
    try:
        write_chunks(chunks, out)
    except StreamAbortedError as e:
        print(f"Enrichment aborted: {e}", file=sys.stderr)
        status = 1
    except OSError as e:
        # Reader went away (e.g. closed pipe); stop the producer
        run.stream.cancel()
        print(f"Output failed: {e}", file=sys.stderr)
        status = 1
    finally:
        if output_path:
            out.close()
        ctx = run.wait()
        # Detached cache writes may still be running after the stream closed
        services.background.shutdown(wait=True)

    meta = dict(ctx.meta) if ctx else {}
    meta["guests"] = len(guests)
    print_summary(meta, output_path=output_path)
    if args.reject_keyword:
        views = merge_profiles(build_views(guests), iter_profiles(delivered))
        print_review(apply_keyword_filters(views, args.reject_keyword), args.reject_keyword)
    if status:
        sys.exit(status)


def cmd_report_cached(args):
    profile = ProfileCache(args.db).get(args.id)
    if profile is None:
        print("No cached profile for id")
        return
    print(json.dumps(profile.model_dump(exclude_none=True), indent=2, ensure_ascii=False))


def main():
    settings = get_settings()
    init_logging(settings.log_level)
    parser = argparse.ArgumentParser(description="Guest enrichment CLI")
    parser.add_argument("--db", default=settings.db_path, help="Path to SQLite profile cache (default from settings)")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_boot = sub.add_parser("bootstrap", help="Create the profile cache table")
    p_boot.set_defaults(func=cmd_bootstrap)

    p_enr = sub.add_parser("enrich", help="Enrich a guest list and stream profiles as NDJSON")
    p_enr.add_argument("--input", "-i", required=True, help="Guest list: .csv with header row, or JSON array / {\"guests\": [...]}")
    p_enr.add_argument("--linkedin-column", default=None, help="Column holding LinkedIn URLs (default: linkedin_url)")
    p_enr.add_argument("--output", "-o", default=None, help="Write NDJSON to this file instead of stdout")
    p_enr.add_argument(
        "--reject-keyword",
        action="append",
        default=[],
        help="Auto-deny pending guests whose name, email or profile mentions this (repeatable)",
    )
    p_enr.set_defaults(func=cmd_enrich)

    p_rc = sub.add_parser("report-cached", help="Show the cached profile for a guest id")
    p_rc.add_argument("--id", required=True, help="Guest api_id")
    p_rc.set_defaults(func=cmd_report_cached)

    args = parser.parse_args()
    args.func(args)


if __name__ == "__main__":
    main()
