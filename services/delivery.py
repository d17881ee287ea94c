from __future__ import annotations

import codecs
import logging
import queue
import threading
from typing import BinaryIO, Iterable, Iterator, Optional, Union

from pydantic import ValidationError

from models import EnrichedProfile


logger = logging.getLogger(__name__)


class StreamClosedError(RuntimeError):
    """Write attempted on a stream that is closed, failed or cancelled by its reader."""


class StreamAbortedError(RuntimeError):
    """The producer tore the stream down with an error instead of closing it."""


_END = object()


class ProfileStream:
    """Ordered, append-only NDJSON channel between the pipeline and one reader.

    The producer calls ``emit`` once per profile and finally ``close`` (or
    ``fail``). The reader iterates byte chunks as they arrive; each chunk is
    exactly one newline-terminated JSON record.
    """

    def __init__(self) -> None:
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._lock = threading.Lock()
        self._state = "open"
        self._error: Optional[BaseException] = None
        self.emitted = 0

    @property
    def state(self) -> str:
        return self._state

    @property
    def closed(self) -> bool:
        return self._state != "open"

    def emit(self, profile: EnrichedProfile) -> None:
        line = (profile.to_json() + "\n").encode("utf-8")
        with self._lock:
            if self._state != "open":
                raise StreamClosedError(f"cannot emit {profile.api_id}: stream is {self._state}")
            self._queue.put(line)
            self.emitted += 1

    def close(self) -> None:
        with self._lock:
            if self._state != "open":
                raise StreamClosedError(f"stream already {self._state}")
            self._state = "closed"
            self._queue.put(_END)

    def fail(self, exc: BaseException) -> None:
        """Tear the stream down with an error; no-op if it is already finished."""
        with self._lock:
            if self._state != "open":
                return
            self._state = "failed"
            self._error = exc
            self._queue.put(_END)

    def cancel(self) -> None:
        """Reader-side disconnect: later emits raise StreamClosedError."""
        with self._lock:
            if self._state == "open":
                self._state = "cancelled"

    def __iter__(self) -> Iterator[bytes]:
        while True:
            item = self._queue.get()
            if item is _END:
                if self._state == "failed":
                    raise StreamAbortedError(str(self._error)) from self._error
                return
            yield item  # type: ignore[misc]


def _parse_line(line: str) -> Optional[EnrichedProfile]:
    line = line.strip()
    if not line:
        return None
    try:
        return EnrichedProfile.model_validate_json(line)
    except ValidationError as e:
        logger.warning("Skipping malformed profile record", extra={"step": "read_stream", "status": "skip", "error": str(e)})
        return None


def iter_profiles(chunks: Iterable[Union[bytes, str]]) -> Iterator[EnrichedProfile]:
    """Reassemble records from arbitrarily split chunks and parse each line.

    A malformed line is skipped without ending the read loop.
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    buffer = ""
    for chunk in chunks:
        buffer += decoder.decode(chunk) if isinstance(chunk, bytes) else chunk
        *lines, buffer = buffer.split("\n")
        for line in lines:
            profile = _parse_line(line)
            if profile is not None:
                yield profile
    buffer += decoder.decode(b"", final=True)
    profile = _parse_line(buffer)
    if profile is not None:
        yield profile


def write_chunks(chunks: Iterable[bytes], out: BinaryIO) -> int:
    """Copy stream chunks to a binary file object, flushing each one. Returns chunk count."""
    count = 0
    for chunk in chunks:
        out.write(chunk)
        out.flush()
        count += 1
    return count
