from __future__ import annotations

import time
from typing import Any, Dict, List, Optional

from openai import OpenAI

from config.llm_routes import ROUTES
from config.settings import Settings, get_settings
from utils.llm_logger import log_call, sha256_text


class LLMClient:
    """Thin wrapper to centralize per-use-case routing and call tracing.

    One instance (and one underlying OpenAI client) is built at process start
    and shared by every adapter that needs a model.
    """

    def __init__(self, settings: Optional[Settings] = None, client: Optional[Any] = None) -> None:
        self.settings = settings or get_settings()
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = OpenAI(api_key=self.settings.openai_api_key)
        return self._client

    def chat(
        self,
        *,
        use_case: str,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        prompt_name: Optional[str] = None,
        prompt_text: Optional[str] = None,
    ) -> Any:
        route = ROUTES.get(use_case, {})
        provider = route.get("provider", "openai")
        model = route.get("model") or self.settings.openai_model or "gpt-4o-mini"
        op = route.get("operation", "chat")
        temp = temperature if temperature is not None else route.get("temperature")
        limit = max_tokens if max_tokens is not None else route.get("max_tokens")

        if provider != "openai":
            raise NotImplementedError(f"Provider not implemented: {provider}")

        kwargs: Dict[str, Any] = {"model": model, "messages": messages}
        # Only pass sampling knobs when configured (some models only accept defaults)
        if temp is not None:
            kwargs["temperature"] = temp
        if limit is not None:
            kwargs["max_tokens"] = limit

        trace = dict(
            caller=f"llm_client.chat:{use_case}",
            provider=provider,
            model=model,
            operation=op,
            prompt_name=prompt_name,
            prompt_hash=sha256_text(prompt_text),
            settings=self.settings,
        )
        t0 = time.time()
        try:
            resp = self.client.chat.completions.create(**kwargs)
        except Exception as e:
            log_call(**trace, duration_ms=int((time.time() - t0) * 1000), status="error", error=str(e))
            raise
        duration_ms = int((time.time() - t0) * 1000)

        usage = getattr(resp, "usage", None)
        usage_obj = None
        if usage is not None:
            usage_obj = {
                "prompt_tokens": getattr(usage, "prompt_tokens", None),
                "completion_tokens": getattr(usage, "completion_tokens", None),
                "total_tokens": getattr(usage, "total_tokens", None),
            }
        log_call(**trace, duration_ms=duration_ms, status="ok", usage=usage_obj)
        return resp


def first_message_text(resp: Any) -> Optional[str]:
    """Return the trimmed text of the first choice, or None if the model said nothing."""
    choices = getattr(resp, "choices", None) or []
    if not choices:
        return None
    content = getattr(choices[0].message, "content", None)
    if not content:
        return None
    return content.strip() or None
