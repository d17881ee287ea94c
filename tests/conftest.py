from __future__ import annotations

import concurrent.futures as _fut
import os
import sys
import threading
from pathlib import Path
from types import SimpleNamespace
from typing import Dict, List, Optional

import pytest


def pytest_configure():
    # Ensure project root is on sys.path for absolute imports like 'services.delivery'
    root = Path(__file__).resolve().parents[1]
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))
    # Set test environment knobs
    os.environ.setdefault("RUN_ENV", "test")


class FakeContentsClient:
    """Stands in for exa_py.Exa: returns canned text per URL."""

    def __init__(self, texts: Optional[Dict[str, str]] = None, error: Optional[Exception] = None):
        self.texts = texts or {}
        self.error = error
        self.calls: List[List[str]] = []

    def get_contents(self, urls, **kwargs):
        self.calls.append(list(urls))
        if self.error is not None:
            raise self.error
        results = [SimpleNamespace(id=u, url=u, text=self.texts[u]) for u in urls if u in self.texts]
        return SimpleNamespace(results=results)


class FakeLLM:
    def __init__(self, reply: Optional[str] = "  Acme builds rockets.  ", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.calls: List[dict] = []

    def chat(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)], usage=None)


class FakeResponse:
    """Streamed requests.Response stand-in serving ``text`` as UTF-8 chunks."""

    def __init__(self, text: str, status_code: int = 200, chunk_size: int = 1024):
        self.text = text
        self.status_code = status_code
        self.chunk_size = chunk_size
        self.headers = {"content-type": "text/html; charset=utf-8"}
        self.encoding = "utf-8"
        self.closed = False

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def iter_content(self, chunk_size=1):
        body = self.text.encode("utf-8")
        for i in range(0, len(body), self.chunk_size):
            yield body[i : i + self.chunk_size]

    def close(self):
        self.closed = True


class FakeSession:
    """requests.Session stand-in: url -> FakeResponse or exception to raise."""

    def __init__(self, pages: Optional[dict] = None):
        self.pages = pages or {}
        self.requested: List[str] = []
        self.kwargs: List[dict] = []
        self._lock = threading.Lock()

    def get(self, url, **kwargs):
        with self._lock:
            self.requested.append(url)
            self.kwargs.append(kwargs)
        page = self.pages.get(url)
        if page is None:
            return FakeResponse("", status_code=404)
        if isinstance(page, Exception):
            raise page
        return page


class MemoryCache:
    """Dict-backed cache port with hooks to make writes fail or block."""

    def __init__(self, profiles=None, write_error: Optional[Exception] = None, write_gate: Optional[threading.Event] = None):
        self.profiles = {p.api_id: p for p in (profiles or [])}
        self.write_error = write_error
        self.write_gate = write_gate
        self.writes: List[List[str]] = []
        self.write_done = threading.Event()

    def lookup_batch(self, api_ids):
        return {i: self.profiles[i] for i in api_ids if i in self.profiles}

    def get(self, api_id):
        return self.profiles.get(api_id)

    def write_batch(self, profiles):
        try:
            if self.write_gate is not None:
                self.write_gate.wait(timeout=5)
            self.writes.append([p.api_id for p in profiles])
            if self.write_error is not None:
                raise self.write_error
            for p in profiles:
                self.profiles[p.api_id] = p
        finally:
            self.write_done.set()


class StubSummarizer:
    """Summarizer port: real website inference, canned summaries."""

    def __init__(self, fail_for: tuple = ()):
        from services.domain_utils import infer_website_from_email

        self._infer = infer_website_from_email
        self.fail_for = fail_for
        self.summarized: List[str] = []
        self._lock = threading.Lock()

    def infer_website(self, email):
        return self._infer(email)

    def summarize(self, website):
        with self._lock:
            self.summarized.append(website)
        if website in self.fail_for:
            raise RuntimeError(f"boom for {website}")
        return f"About {website}"


@pytest.fixture
def settings(tmp_path):
    from config.settings import Settings

    return Settings(db_path=str(tmp_path / "cache.db"), batch_delay_seconds=1.0)


@pytest.fixture
def background():
    ex = _fut.ThreadPoolExecutor(max_workers=1, thread_name_prefix="test-cache-writer")
    yield ex
    ex.shutdown(wait=True)


@pytest.fixture
def make_guest():
    from models import Guest

    def _make(i, url=True, email=None, **extra):
        return Guest(
            api_id=f"g{i}",
            name=f"Guest {i}",
            email=email or f"guest{i}@gmail.com",
            linkedin_url=f"https://linkedin.com/in/guest{i}" if url else None,
            extra=extra,
        )

    return _make
