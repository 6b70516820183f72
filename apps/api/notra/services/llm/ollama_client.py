from __future__ import annotations

from typing import Any, Dict

import httpx

from notra.core.logging import get_logger
from notra.services.errors import TransportFailure
from notra.services.llm.prompts import Prompt

logger = get_logger(__name__)


class OllamaCompletionClient:
    """
    Minimal Ollama client for local generation.

    Uses /api/generate (simple) to keep integration stable.
    """

    name = "ollama"

    def __init__(self, base_url: str, model: str, timeout_s: float = 120.0, transport: httpx.BaseTransport | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout_s = timeout_s
        self._transport = transport

    def complete(
        self,
        prompt: Prompt,
        *,
        temperature: float,
        json_mode: bool,
        max_tokens: int,
    ) -> str:
        url = f"{self.base_url}/api/generate"

        payload: Dict[str, Any] = {
            "model": self.model,
            "prompt": prompt.user,
            "system": prompt.system,
            "stream": False,
            "options": {
                "temperature": temperature,
                "num_predict": max_tokens,
            },
        }
        if json_mode:
            payload["format"] = "json"

        try:
            with httpx.Client(timeout=self.timeout_s, transport=self._transport) as client:
                r = client.post(url, json=payload)
                r.raise_for_status()
                data = r.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("ollama_call_failed", model=self.model, error=str(e))
            raise TransportFailure(f"Ollama call failed: {e}", provider=self.name) from e

        # Ollama returns {"response": "...", ...}
        return (data.get("response") or "").strip()
