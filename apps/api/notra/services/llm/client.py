from __future__ import annotations

from typing import Protocol

from notra.core.config import Settings
from notra.services.llm.prompts import Prompt


class CompletionClient(Protocol):
    """
    Anything that can turn a prompt into completion text.

    Implementations raise TransportFailure when the call itself fails;
    whatever text comes back (even garbage) is returned as-is.
    """

    name: str

    def complete(
        self,
        prompt: Prompt,
        *,
        temperature: float,
        json_mode: bool,
        max_tokens: int,
    ) -> str: ...


def build_completion_client(s: Settings) -> CompletionClient:
    provider = (s.llm_provider or "openai").lower()

    if provider == "ollama":
        from notra.services.llm.ollama_client import OllamaCompletionClient

        return OllamaCompletionClient(base_url=s.ollama_base_url, model=s.ollama_model, timeout_s=s.ollama_timeout_sec)

    if provider == "openai":
        from notra.services.llm.openai_client import OpenAICompletionClient

        return OpenAICompletionClient(
            api_key=s.openai_api_key,
            model=s.openai_model,
            timeout_sec=s.openai_timeout_sec,
            max_retries=s.openai_max_retries,
        )

    raise ValueError(f"Unknown LLM_PROVIDER: {s.llm_provider}")
