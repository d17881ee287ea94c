from __future__ import annotations

from typing import Any, List, Protocol


class ContentsClientPort(Protocol):
    """Bulk page-contents provider (shape of ``exa_py.Exa.get_contents``).

    The returned object exposes ``results``; each result has ``id``, ``url``
    and ``text`` attributes.
    """

    def get_contents(self, urls: List[str], **kwargs: Any) -> Any:
        ...
