import json
from dataclasses import replace
from types import SimpleNamespace

import httpx
import openai
import pytest

from notra.core.config import settings
from notra.services.errors import TransportFailure
from notra.services.llm.client import build_completion_client
from notra.services.llm.ollama_client import OllamaCompletionClient
from notra.services.llm.openai_client import OpenAICompletionClient
from notra.services.llm.prompts import Prompt

PROMPT = Prompt(system="sys", user="usr")


def test_ollama_sends_generate_request():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"response": '  {"title": "x"}  '})

    client = OllamaCompletionClient("http://ollama:11434/", "qwen", transport=httpx.MockTransport(handler))
    out = client.complete(PROMPT, temperature=0.5, json_mode=True, max_tokens=100)

    assert out == '{"title": "x"}'
    assert seen["url"] == "http://ollama:11434/api/generate"
    assert seen["body"]["system"] == "sys"
    assert seen["body"]["prompt"] == "usr"
    assert seen["body"]["format"] == "json"
    assert seen["body"]["options"] == {"temperature": 0.5, "num_predict": 100}


def test_ollama_plain_mode_has_no_format():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"response": "summary"})

    client = OllamaCompletionClient("http://ollama", "qwen", transport=httpx.MockTransport(handler))
    assert client.complete(PROMPT, temperature=0.2, json_mode=False, max_tokens=10) == "summary"
    assert "format" not in seen["body"]


def test_ollama_http_error_is_transport_failure():
    client = OllamaCompletionClient(
        "http://ollama", "qwen", transport=httpx.MockTransport(lambda r: httpx.Response(500, text="boom"))
    )
    with pytest.raises(TransportFailure) as exc:
        client.complete(PROMPT, temperature=0.5, json_mode=True, max_tokens=10)
    assert exc.value.provider == "ollama"


class _FakeCompletions:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error:
            raise self.error
        return self.result


def _fake_openai(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


def _chat(content, finish_reason="stop"):
    message = SimpleNamespace(content=content)
    return SimpleNamespace(choices=[SimpleNamespace(message=message, finish_reason=finish_reason)])


def test_openai_json_mode_request():
    completions = _FakeCompletions(result=_chat(' {"a": 1} '))
    client = OpenAICompletionClient(api_key=None, model="gpt-4o-mini", client=_fake_openai(completions))

    assert client.complete(PROMPT, temperature=0.5, json_mode=True, max_tokens=6000) == '{"a": 1}'
    kw = completions.kwargs
    assert kw["model"] == "gpt-4o-mini"
    assert kw["response_format"] == {"type": "json_object"}
    assert kw["max_tokens"] == 6000
    assert kw["messages"][0] == {"role": "system", "content": "sys"}


def test_openai_plain_mode_and_truncated_output():
    completions = _FakeCompletions(result=_chat("partial", finish_reason="length"))
    client = OpenAICompletionClient(api_key=None, client=_fake_openai(completions))
    assert client.complete(PROMPT, temperature=0.2, json_mode=False, max_tokens=5) == "partial"
    assert "response_format" not in completions.kwargs


def test_openai_sdk_error_is_transport_failure():
    error = openai.APIConnectionError(request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions"))
    client = OpenAICompletionClient(api_key=None, client=_fake_openai(_FakeCompletions(error=error)))
    with pytest.raises(TransportFailure) as exc:
        client.complete(PROMPT, temperature=0.5, json_mode=True, max_tokens=10)
    assert exc.value.provider == "openai"


def test_openai_missing_key_is_transport_failure():
    client = OpenAICompletionClient(api_key=None)
    with pytest.raises(TransportFailure):
        client.complete(PROMPT, temperature=0.5, json_mode=True, max_tokens=10)


def test_client_factory_selects_provider():
    assert build_completion_client(replace(settings, llm_provider="ollama")).name == "ollama"
    assert build_completion_client(replace(settings, llm_provider="openai")).name == "openai"
    with pytest.raises(ValueError):
        build_completion_client(replace(settings, llm_provider="bogus"))
