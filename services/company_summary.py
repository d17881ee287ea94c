from __future__ import annotations

import concurrent.futures as _fut
import logging
import threading
import time
from typing import Any, Dict, List, Optional, Union

import requests
from bs4 import BeautifulSoup

from config.settings import Settings, get_settings
from ports import LLMClientPort
from services.domain_utils import infer_website_from_email
from services.llm_client import first_message_text


logger = logging.getLogger(__name__)


SUMMARY_PROMPT = "Create a 20-word summary of this company based on their website content:\n\n{content}"

_CHUNK_BYTES = 4096


def html_to_text(html: Union[str, bytes], encoding: Optional[str] = None) -> str:
    if isinstance(html, bytes):
        soup = BeautifulSoup(html, "html.parser", from_encoding=encoding)
    else:
        soup = BeautifulSoup(html, "html.parser")
    # Drop script/style
    for tag in soup(["script", "style", "noscript"]):
        tag.extract()
    return " ".join((soup.get_text(" ") or "").split())


def _declared_charset(resp: Any) -> Optional[str]:
    # requests defaults text/* to ISO-8859-1; only trust an explicit charset
    content_type = (getattr(resp, "headers", None) or {}).get("content-type", "")
    if "charset=" not in content_type.lower():
        return None
    return getattr(resp, "encoding", None)


class PageFetchTimeout(Exception):
    """A page download ran past its deadline."""


class CompanySummarizer:
    """Short natural-language company descriptions from the company's own pages."""

    def __init__(
        self,
        llm: LLMClientPort,
        session: Optional[requests.Session] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.llm = llm
        self.session = session or requests.Session()
        self.settings = settings or get_settings()

    def infer_website(self, email: Optional[str]) -> Optional[str]:
        return infer_website_from_email(email)

    def page_urls(self, website: str) -> List[str]:
        base = website.rstrip("/")
        return [website, f"{base}/about"]

    def fetch_page_text(self, url: str) -> Optional[str]:
        """Fetch one page as plain text within the page timeout; any failure contributes nothing.

        The download runs on a daemon thread and the caller stops waiting at
        the deadline, so a server that trickles bytes cannot hold a batch.
        An abandoned download stops at its next chunk.
        """
        timeout = self.settings.page_fetch_timeout_seconds
        deadline = time.monotonic() + timeout
        done = threading.Event()
        outcome: Dict[str, Any] = {}

        def _work() -> None:
            try:
                outcome["text"] = self._download_text(url, deadline)
            except Exception as e:
                outcome["error"] = e
            finally:
                done.set()

        threading.Thread(target=_work, name="page-fetch", daemon=True).start()
        if not done.wait(timeout):
            logger.debug(
                f"Page fetch {url} exceeded {timeout}s",
                extra={"step": "summary_fetch", "status": "timeout"},
            )
            return None
        if "error" in outcome:
            raise outcome["error"]
        return outcome.get("text")

    def _download_text(self, url: str, deadline: float) -> Optional[str]:
        try:
            resp = self.session.get(
                url,
                timeout=self.settings.page_fetch_timeout_seconds,
                headers={"User-Agent": self.settings.user_agent},
                stream=True,
            )
        except requests.RequestException as e:
            logger.debug(f"Page fetch {url} failed", extra={"step": "summary_fetch", "status": "error", "error": str(e)})
            return None

        try:
            if not resp.ok:
                logger.debug(f"Page fetch {url} returned {resp.status_code}", extra={"step": "summary_fetch", "status": "skip"})
                return None
            body = bytearray()
            for chunk in resp.iter_content(chunk_size=_CHUNK_BYTES):
                if time.monotonic() > deadline:
                    raise PageFetchTimeout(url)
                body.extend(chunk)
                if len(body) >= self.settings.page_max_bytes:
                    break
            if time.monotonic() > deadline:
                raise PageFetchTimeout(url)
        except requests.RequestException as e:
            logger.debug(f"Page fetch {url} failed", extra={"step": "summary_fetch", "status": "error", "error": str(e)})
            return None
        except PageFetchTimeout:
            logger.debug(f"Page fetch {url} abandoned at deadline", extra={"step": "summary_fetch", "status": "timeout"})
            return None
        finally:
            resp.close()

        text = html_to_text(bytes(body), encoding=_declared_charset(resp))
        return text[: self.settings.page_text_max_chars] or None

    def gather_content(self, website: str) -> str:
        urls = self.page_urls(website)
        with _fut.ThreadPoolExecutor(max_workers=len(urls)) as ex:
            pages = list(ex.map(self.fetch_page_text, urls))
        content = "\n\n".join(p for p in pages if p)
        return content[: self.settings.summary_context_max_chars]

    def summarize(self, website: Optional[str]) -> Optional[str]:
        """Return a ~20 word description of the company at ``website``, or None."""
        if not website:
            return None
        content = self.gather_content(website)
        if not content:
            return None

        prompt = SUMMARY_PROMPT.format(content=content)
        try:
            resp = self.llm.chat(
                use_case="company_summary",
                messages=[{"role": "user", "content": prompt}],
                prompt_name="company_summary",
                prompt_text=prompt,
            )
        except Exception as e:
            logger.warning(
                f"Summary generation failed for {website}",
                extra={"step": "summary", "status": "error", "provider": "openai", "error": str(e)},
            )
            return None
        return first_message_text(resp)
