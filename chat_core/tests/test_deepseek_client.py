import json

import httpx
import pytest

from chat_core.domain.exceptions import TransientNetworkError
from chat_core.domain.models import ChatMessage, ModelSettings
from chat_core.providers.deepseek_client import DeepSeekClient
from chat_core.providers.retry import RetryPolicy


class SettingsStub:
    http_timeout = 60.0
    token_timeout = 30.0
    probe_max_tokens = 5


MS = ModelSettings(provider="deepseek", api_key="k", model_name="deepseek-reasoner")


def _delta(**fields):
    return "data: " + json.dumps({"choices": [{"index": 0, "delta": fields}]})


class FakeResponse:
    status_code = 200
    reason_phrase = "OK"

    def __init__(self, data=None, lines=()):
        self._data = data
        self._lines = list(lines)

    def json(self):
        return self._data

    def iter_lines(self):
        yield from self._lines


class StreamContext:
    def __init__(self, response):
        self._response = response

    def __enter__(self):
        return self._response

    def __exit__(self, *args):
        return False


def _install(monkeypatch, responses, captured):
    class Client:
        def __init__(self, *a, **kw):
            pass

        def __enter__(self):
            return self

        def __exit__(self, *a):
            return False

        def post(self, url, json=None, **kw):
            captured.setdefault("posts", []).append({"url": url, "json": json})
            item = responses.pop(0)
            if isinstance(item, Exception):
                raise item
            return item

        def stream(self, method, url, json=None, **kw):
            captured.setdefault("streams", []).append({"url": url, "json": json})
            return StreamContext(responses.pop(0))

    monkeypatch.setattr("httpx.Client", Client)


def test_stream_splits_reasoning_and_answer(monkeypatch):
    lines = [
        _delta(reasoning_content="a"),
        _delta(reasoning_content="b"),
        _delta(content="x"),
        _delta(content="y"),
        "data: [DONE]",
    ]
    _install(monkeypatch, [FakeResponse(lines=lines)], {})
    progress = []
    result = DeepSeekClient(SettingsStub(), RetryPolicy(sleep=lambda _: None)).complete(
        [ChatMessage(role="user", content="hi")], MS, progress.append
    )
    wrapped = '<div class="reasoning-content">ab</div>\n\n'
    assert result == wrapped + "xy"
    assert progress[-1] == result
    assert progress[0] == '<div class="reasoning-content">a</div>\n\n'
    assert progress[2] == wrapped + "x"


def test_non_stream_composes_reasoning(monkeypatch):
    data = {"choices": [{"message": {"content": "answer", "reasoning_content": "thoughts"}}]}
    _install(monkeypatch, [FakeResponse(data=data)], {})
    ms = ModelSettings(provider="deepseek", api_key="k", stream=False)
    result = DeepSeekClient(SettingsStub(), RetryPolicy()).complete([ChatMessage(role="user", content="q")], ms)
    assert result == '<div class="reasoning-content">thoughts</div>\n\nanswer'


def test_non_stream_two_timeouts_then_success(monkeypatch):
    responses = [
        httpx.ReadTimeout("t1"),
        httpx.ConnectTimeout("t2"),
        FakeResponse(data={"choices": [{"message": {"content": "done"}}]}),
    ]
    captured = {}
    _install(monkeypatch, responses, captured)
    delays = []
    ms = ModelSettings(provider="deepseek", api_key="k", model_name="", stream=False)
    client = DeepSeekClient(SettingsStub(), RetryPolicy(sleep=delays.append))
    assert client.complete([ChatMessage(role="user", content="q")], ms) == "done"
    assert delays == [1.0, 2.0]
    assert len(captured["posts"]) == 3
    assert captured["posts"][0]["json"]["model"] == "deepseek-chat"
    assert captured["posts"][0]["url"] == "https://api.deepseek.com/v1/chat/completions"


def test_non_stream_gives_up_after_three_attempts(monkeypatch):
    _install(monkeypatch, [httpx.ReadTimeout("t")] * 3, {})
    delays = []
    ms = ModelSettings(provider="deepseek", api_key="k", stream=False)
    with pytest.raises(TransientNetworkError) as exc_info:
        DeepSeekClient(SettingsStub(), RetryPolicy(sleep=delays.append)).complete(
            [ChatMessage(role="user", content="q")], ms
        )
    assert exc_info.value.message == "Request timed out, please try again later"
    assert delays == [1.0, 2.0]


def test_probe_is_a_canary_chat(monkeypatch):
    captured = {}
    _install(monkeypatch, [FakeResponse(data={"choices": [{"message": {"content": "h"}}]})], captured)
    result = DeepSeekClient(SettingsStub(), RetryPolicy()).probe(MS)
    assert result.success
    payload = captured["posts"][0]["json"]
    assert payload["max_tokens"] == 5
    assert payload["model"] == "deepseek-reasoner"
    assert payload["messages"] == [{"role": "user", "content": "Hello"}]
