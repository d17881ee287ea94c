from __future__ import annotations

import json
import sys
from typing import List

import pytest

import cli
from conftest import FakeContentsClient, MemoryCache, StubSummarizer
from models import EnrichedProfile
from pipelines.enrich_guests import EnrichmentServices
from services.content_extraction import ContentExtractionAdapter
from services.delivery import iter_profiles
from services.profile_cache import ProfileCache


def _run_cli_with_args(args_list: List[str], monkeypatch) -> int:
    monkeypatch.setattr(sys, "argv", ["cli.py"] + args_list)
    try:
        cli.main()
    except SystemExit as e:
        return int(e.code or 0)
    return 0


@pytest.fixture(autouse=True)
def cli_env(monkeypatch):
    from config.settings import get_settings

    monkeypatch.setenv("RUN_ENV", "test")
    monkeypatch.setenv("RUN_ID", "cli-test-run")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def stub_services(monkeypatch):
    """Replace provider wiring with in-memory fakes; returns the cache used."""
    import concurrent.futures as _fut

    cache = MemoryCache([EnrichedProfile(api_id="g2", name="Bob", email="bob@gmail.com", company="Cached Co")])
    contents = FakeContentsClient(texts={"https://linkedin.com/in/ann": "Position: Engineer\nemployer: Acme"})

    def _build(settings):
        return EnrichmentServices(
            cache=cache,
            extractor=ContentExtractionAdapter(contents),
            summarizer=StubSummarizer(),
            background=_fut.ThreadPoolExecutor(max_workers=1),
        )

    monkeypatch.setattr(cli, "build_services", _build)
    monkeypatch.setenv("BATCH_DELAY_SECONDS", "0")
    return cache


def test_bootstrap_and_report_cached(tmp_path, monkeypatch, capsys):
    db_path = tmp_path / "cli.db"
    assert _run_cli_with_args(["--db", str(db_path), "bootstrap"], monkeypatch) == 0
    assert "Schema ready" in capsys.readouterr().out

    ProfileCache(str(db_path)).write_batch([EnrichedProfile(api_id="g1", name="Ann", company="Acme")])
    assert _run_cli_with_args(["--db", str(db_path), "report-cached", "--id", "g1"], monkeypatch) == 0
    shown = json.loads(capsys.readouterr().out)
    assert shown == {"api_id": "g1", "name": "Ann", "email": "", "company": "Acme"}

    _run_cli_with_args(["--db", str(db_path), "report-cached", "--id", "nope"], monkeypatch)
    assert "No cached profile" in capsys.readouterr().out


def test_enrich_writes_ndjson_file(tmp_path, monkeypatch, capsys, stub_services):
    guests = tmp_path / "guests.csv"
    guests.write_text(
        "api_id,name,email,linkedin_url\n"
        "g1,Ann,ann@acme.com,https://www.linkedin.com/in/Ann\n"
        "g2,Bob,bob@gmail.com,\n",
        encoding="utf-8",
    )
    out_path = tmp_path / "profiles.ndjson"

    code = _run_cli_with_args(
        ["--db", str(tmp_path / "cli.db"), "enrich", "--input", str(guests), "--output", str(out_path)],
        monkeypatch,
    )

    assert code == 0
    profiles = list(iter_profiles([out_path.read_bytes()]))
    assert [p.api_id for p in profiles] == ["g2", "g1"]
    assert profiles[0].company == "Cached Co"
    assert profiles[1].bio == "Engineer"
    assert profiles[1].company_summary == "About https://acme.com"
    # Background writer was drained before the command returned
    assert stub_services.writes == [["g1"]]
    err = capsys.readouterr().err
    assert "Delivered: 2" in err
    assert f"Output File: {out_path}" in err


def test_enrich_rejects_malformed_input(tmp_path, monkeypatch, capsys, stub_services):
    guests = tmp_path / "guests.json"
    guests.write_text(json.dumps([{"api_id": "g1"}, {"api_id": "g1"}]), encoding="utf-8")

    code = _run_cli_with_args(["--db", str(tmp_path / "cli.db"), "enrich", "--input", str(guests)], monkeypatch)

    assert code == 2
    assert "duplicate api_id" in capsys.readouterr().err
    assert stub_services.writes == []


def test_enrich_missing_input_file_is_a_client_error(tmp_path, monkeypatch, capsys, stub_services):
    code = _run_cli_with_args(
        ["--db", str(tmp_path / "cli.db"), "enrich", "--input", str(tmp_path / "missing.csv")],
        monkeypatch,
    )
    assert code == 2
    assert "Invalid guest list: cannot read guest list" in capsys.readouterr().err


def test_enrich_without_exa_key_prints_one_line(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("EXA_API_KEY", "")
    monkeypatch.setenv("EXASEARCH_API_KEY", "")
    guests = tmp_path / "guests.json"
    guests.write_text(json.dumps([{"api_id": "g1", "name": "Ann"}]), encoding="utf-8")

    code = _run_cli_with_args(["--db", str(tmp_path / "cli.db"), "enrich", "--input", str(guests)], monkeypatch)

    assert code == 1
    err = capsys.readouterr().err
    assert "Configuration error: EXA_API_KEY is required" in err
    assert "Traceback" not in err


def test_enrich_reject_keyword_reports_review(tmp_path, monkeypatch, capsys, stub_services):
    guests = tmp_path / "guests.csv"
    guests.write_text(
        "api_id,name,email,linkedin_url,approval_status\n"
        "g1,Ann,ann@acme.com,https://www.linkedin.com/in/Ann,approved\n"
        "g2,Bob,bob@gmail.com,,pending_approval\n"
        "g3,Cy,cy@cached.io,,pending_approval\n",
        encoding="utf-8",
    )
    out_path = tmp_path / "profiles.ndjson"

    code = _run_cli_with_args(
        [
            "--db", str(tmp_path / "cli.db"),
            "enrich", "--input", str(guests), "--output", str(out_path),
            "--reject-keyword", "cached co",
            "--reject-keyword", "acme",
        ],
        monkeypatch,
    )

    assert code == 0
    assert len(out_path.read_bytes().splitlines()) == 3
    err = capsys.readouterr().err
    assert "Review (reject keywords: cached co, acme)" in err
    assert "Approved: 1" in err
    assert "Pending: 1" in err
    assert "Denied: 1" in err
    assert "denied g2 Bob (Cached Co)" in err
