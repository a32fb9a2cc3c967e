import httpx

from chat_core.domain.models import ModelSettings
from chat_core.providers.prober import probe_connection


class Resp:
    reason_phrase = "Unauthorized"

    def __init__(self, status_code=200, data=None):
        self.status_code = status_code
        self._data = data
        self.text = str(data)

    def json(self):
        return self._data


def _install(monkeypatch, responses):
    class Client:
        def __init__(self, *a, **kw):
            pass

        def __enter__(self):
            return self

        def __exit__(self, *a):
            return False

        def _next(self):
            item = responses.pop(0)
            if isinstance(item, Exception):
                raise item
            return item

        def get(self, *a, **kw):
            return self._next()

        def post(self, *a, **kw):
            return self._next()

    monkeypatch.setattr("httpx.Client", Client)


def test_unknown_provider():
    result = probe_connection(ModelSettings(provider="mystery", api_key="k"))
    assert not result.success
    assert result.message == "Unsupported API provider"


def test_openai_probe_success(monkeypatch):
    _install(monkeypatch, [Resp(data={"data": [{"id": "gpt-4o"}]})])
    result = probe_connection(ModelSettings(provider="openai", api_key="sk"))
    assert result.success
    assert result.message == "Connection succeeded"


def test_http_failure_is_captured(monkeypatch):
    _install(monkeypatch, [Resp(status_code=401, data={"error": "invalid key"})])
    result = probe_connection(ModelSettings(provider="deepseek", api_key="bad"))
    assert not result.success
    assert result.message == "DeepSeek connection failed: Server responded with status 401 Unauthorized"


def test_network_failure_is_captured(monkeypatch):
    _install(monkeypatch, [httpx.ConnectTimeout("slow")])
    result = probe_connection(ModelSettings(provider="volcano", api_key="k"))
    assert not result.success
    assert "timed out" in result.message


def test_malformed_baidu_key_is_captured(monkeypatch):
    _install(monkeypatch, [])
    result = probe_connection(ModelSettings(provider="baidu", api_key="no-secret"))
    assert not result.success
    assert "API_KEY:SECRET_KEY" in result.message


def test_unexpected_exception_is_captured(monkeypatch):
    _install(monkeypatch, [RuntimeError("kaboom")])
    result = probe_connection(ModelSettings(provider="alibaba", api_key="k"))
    assert not result.success
    assert result.message.endswith("kaboom")


def test_xunfei_shape_check(monkeypatch):
    _install(monkeypatch, [])
    assert probe_connection(ModelSettings(provider="xunfei", api_key="a.b.c")).success
    assert not probe_connection(ModelSettings(provider="xunfei", api_key="a:b")).success
