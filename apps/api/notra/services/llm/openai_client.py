from __future__ import annotations

import openai
from openai import OpenAI

from notra.core.logging import get_logger
from notra.services.errors import TransportFailure
from notra.services.llm.prompts import Prompt

logger = get_logger(__name__)


class OpenAICompletionClient:
    """
    Chat Completions wrapper.

    The SDK's own retries cover connection hiccups; anything that still
    escapes is reported as TransportFailure and not retried here.
    """

    name = "openai"

    def __init__(
        self,
        api_key: str | None,
        model: str = "gpt-4o-mini",
        timeout_sec: float = 180.0,
        max_retries: int = 2,
        client: OpenAI | None = None,
    ) -> None:
        self.model = model
        self._api_key = api_key
        self._timeout_sec = timeout_sec
        self._max_retries = max_retries
        self._client = client

    def _get_client(self) -> OpenAI:
        if self._client is None:
            if not self._api_key:
                raise TransportFailure("OPENAI_API_KEY is missing", provider=self.name)
            self._client = OpenAI(api_key=self._api_key, timeout=self._timeout_sec, max_retries=self._max_retries)
        return self._client

    def complete(
        self,
        prompt: Prompt,
        *,
        temperature: float,
        json_mode: bool,
        max_tokens: int,
    ) -> str:
        client = self._get_client()

        kwargs = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": prompt.system},
                {"role": "user", "content": prompt.user},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            chat = client.chat.completions.create(**kwargs)
        except openai.OpenAIError as e:
            logger.warning("openai_call_failed", model=self.model, error=str(e))
            raise TransportFailure(f"OpenAI call failed: {e}", provider=self.name) from e

        if not chat.choices:
            return ""
        choice = chat.choices[0]
        if getattr(choice, "finish_reason", None) == "length":
            logger.warning("openai_output_truncated", model=self.model, max_tokens=max_tokens)
        return (choice.message.content or "").strip()
