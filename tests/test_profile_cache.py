from __future__ import annotations

import sqlite3
from contextlib import closing

import pytest

from db.connection import get_connection
from models import EnrichedProfile
from services.profile_cache import ProfileCache


@pytest.fixture
def cache(settings):
    c = ProfileCache(settings.db_path, chunk_size=2, clock=lambda: 1_700_000_000.7)
    c.bootstrap()
    return c


def _profile(i: int, **fields) -> EnrichedProfile:
    return EnrichedProfile(api_id=f"g{i}", name=f"Guest {i}", email=f"g{i}@acme.com", **fields)


def _rows(db_path):
    with closing(get_connection(db_path)) as conn:
        return conn.execute("SELECT api_id, document, updated_at FROM profile_cache ORDER BY api_id").fetchall()


def test_bootstrap_is_idempotent(cache):
    cache.bootstrap()
    assert _rows(cache.db_path) == []


def test_write_then_lookup_round_trip(cache):
    profiles = [_profile(i, company="Acme", company_summary="Rockets.") for i in range(5)]
    cache.write_batch(profiles)

    found = cache.lookup_batch(["g0", "g3", "missing", "g4"])
    assert set(found) == {"g0", "g3", "g4"}
    assert found["g3"] == profiles[3]
    assert cache.get("g1") == profiles[1]
    assert cache.get("missing") is None


def test_one_write_shares_a_timestamp(cache):
    cache.write_batch([_profile(1), _profile(2), _profile(3)])
    assert {row[2] for row in _rows(cache.db_path)} == {1_700_000_000}


def test_document_omits_unset_fields(cache):
    cache.write_batch([_profile(1, bio="Engineer")])
    [(_, document, _)] = _rows(cache.db_path)
    assert "company_summary" not in document
    assert '"bio":"Engineer"' in document


def test_rewrite_overwrites_previous_profile(cache):
    cache.write_batch([_profile(1, company="Old Co")])
    cache.write_batch([_profile(1, company="New Co")])
    assert len(_rows(cache.db_path)) == 1
    assert cache.get("g1").company == "New Co"


def test_lookup_dedupes_and_ignores_empty_ids(cache):
    cache.write_batch([_profile(1)])
    assert list(cache.lookup_batch(["g1", "g1", "", "g1"])) == ["g1"]
    assert cache.lookup_batch([]) == {}


def test_corrupt_document_is_treated_as_miss(cache):
    cache.write_batch([_profile(1), _profile(2)])
    with closing(get_connection(cache.db_path)) as conn:
        conn.execute("UPDATE profile_cache SET document = ? WHERE api_id = ?", ("{not json", "g2"))
        conn.commit()

    found = cache.lookup_batch(["g1", "g2"])
    assert list(found) == ["g1"]


def test_lookup_without_table_degrades_to_misses(tmp_path):
    cache = ProfileCache(str(tmp_path / "empty.db"))
    assert cache.lookup_batch(["g1"]) == {}


def test_write_failure_is_swallowed(tmp_path):
    def broken_connect(_path):
        raise sqlite3.OperationalError("disk I/O error")

    cache = ProfileCache(str(tmp_path / "x.db"), connect=broken_connect)
    cache.write_batch([_profile(1)])
    assert cache.lookup_batch(["g1"]) == {}


def test_write_empty_batch_does_not_connect(tmp_path):
    calls = []

    def counting_connect(path):
        calls.append(path)
        return get_connection(path)

    ProfileCache(str(tmp_path / "x.db"), connect=counting_connect).write_batch([])
    assert calls == []
