from __future__ import annotations

import os


# Central routing for LLM use-cases. Edit here to change per-operation defaults.
# Per-route model can be overridden via env vars for quick testing.
#
# Keys are use_case identifiers consumed by services/llm_client.py
ROUTES: dict[str, dict] = {
    # Short company description from homepage/about text (OpenAI chat)
    "company_summary": {
        "provider": os.getenv("LLM_SUMMARY_PROVIDER", "openai"),
        "model": os.getenv("OPENAI_MODEL_SUMMARY"),  # falls back to global OPENAI_MODEL
        "temperature": 0.3,
        "max_tokens": 50,
        # Logical operation name for logging (not a vendor API name)
        "operation": "company_summary",
    },
}
