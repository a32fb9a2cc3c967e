import socket

import httpx
import pytest

from chat_core.domain.cancellation import CancellationToken
from chat_core.domain.exceptions import (
    CONNECTION_RESET,
    DNS_FAILURE,
    TIMEOUT,
    ConfigurationError,
    NetworkError,
    ProtocolError,
    RateLimitError,
    RequestCancelledError,
    TransientNetworkError,
)
from chat_core.providers.retry import RetryPolicy, linear_backoff
from chat_core.providers.transport import classify_request_error, iter_sse_json, raise_for_status


def _policy():
    delays = []
    return RetryPolicy(sleep=delays.append), delays


def test_two_timeouts_then_success():
    policy, delays = _policy()
    outcomes = [TransientNetworkError(TIMEOUT), TransientNetworkError(TIMEOUT), "ok"]

    def call():
        item = outcomes.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    assert policy.run(call, provider="baidu") == "ok"
    assert delays == [1.0, 2.0]


def test_each_retry_is_logged_at_warning(caplog):
    policy, delays = _policy()
    outcomes = [TransientNetworkError(CONNECTION_RESET), "ok"]

    def call():
        item = outcomes.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    with caplog.at_level("WARNING", logger="chat_core"):
        assert policy.run(call, provider="volcano") == "ok"
    warnings = [r for r in caplog.records if r.levelname == "WARNING"]
    assert len(warnings) == 1
    assert "volcano request failed (connection_reset), retrying in 1.0s" in warnings[0].getMessage()
    assert delays == [1.0]


def test_non_transient_error_is_not_retried():
    policy, delays = _policy()
    calls = []

    def call():
        calls.append(1)
        raise ConfigurationError(code="MALFORMED_API_KEY", message="bad key")

    with pytest.raises(ConfigurationError):
        policy.run(call)
    assert len(calls) == 1
    assert delays == []


def test_attempts_exhausted_raises_last_error():
    policy, delays = _policy()
    errors = [TransientNetworkError(DNS_FAILURE), TransientNetworkError(CONNECTION_RESET), TransientNetworkError(TIMEOUT)]

    def call():
        raise errors.pop(0)

    with pytest.raises(TransientNetworkError) as exc_info:
        policy.run(call)
    assert exc_info.value.category == TIMEOUT
    assert exc_info.value.message == "Request timed out, please try again later"
    assert delays == [1.0, 2.0]


def test_category_outside_retryable_set_stops_immediately():
    delays = []
    policy = RetryPolicy(retryable=frozenset({TIMEOUT}), sleep=delays.append)

    def call():
        raise TransientNetworkError(DNS_FAILURE)

    with pytest.raises(TransientNetworkError) as exc_info:
        policy.run(call)
    assert "Cannot resolve API host" in exc_info.value.message
    assert delays == []


def test_cancelled_token_stops_before_next_attempt():
    token = CancellationToken()
    calls = []

    def sleep(_):
        token.cancel("user stopped")

    def call():
        calls.append(1)
        raise TransientNetworkError(TIMEOUT)

    with pytest.raises(RequestCancelledError) as exc_info:
        RetryPolicy(sleep=sleep).run(call, cancel_token=token)
    assert len(calls) == 1
    assert exc_info.value.message == "user stopped"


def test_from_settings_uses_configured_backoff():
    class SettingsStub:
        retry_max_attempts = 5
        retry_backoff_seconds = 0.5

    policy = RetryPolicy.from_settings(SettingsStub())
    assert policy.max_attempts == 5
    assert policy.backoff(3) == 1.5
    assert linear_backoff(2) == 2.0


def test_classify_request_errors():
    assert classify_request_error(httpx.ReadTimeout("slow"), "x").category == TIMEOUT
    assert classify_request_error(httpx.ConnectTimeout("slow"), "x").category == TIMEOUT

    dns = httpx.ConnectError("connect failed")
    dns.__cause__ = socket.gaierror(-2, "Name or service not known")
    assert classify_request_error(dns, "x").category == DNS_FAILURE

    reset = httpx.ConnectError("connect failed")
    reset.__cause__ = ConnectionResetError(104, "Connection reset by peer")
    assert classify_request_error(reset, "x").category == CONNECTION_RESET
    assert classify_request_error(httpx.RemoteProtocolError("peer closed"), "x").category == CONNECTION_RESET

    refused = classify_request_error(httpx.ConnectError("Connection refused"), "x")
    assert isinstance(refused, NetworkError)
    assert not isinstance(refused, TransientNetworkError)


def test_raise_for_status_messages():
    class Resp:
        def __init__(self, status, reason):
            self.status_code = status
            self.reason_phrase = reason
            self.text = "boom"

    raise_for_status(Resp(200, "OK"), "x")
    with pytest.raises(ProtocolError) as exc_info:
        raise_for_status(Resp(500, "Internal Server Error"), "x")
    assert exc_info.value.message == "Server responded with status 500 Internal Server Error"
    assert exc_info.value.http_status == 500
    with pytest.raises(RateLimitError):
        raise_for_status(Resp(429, "Too Many Requests"), "x")


def test_iter_sse_json_skips_noise():
    lines = ["", ": keep-alive", 'data: {"a": 1}', "data: not-json", '{"b": 2}', "data: [DONE]"]
    assert list(iter_sse_json(lines)) == [{"a": 1}, {"b": 2}]
