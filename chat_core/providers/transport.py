"""HTTP 传输层公共逻辑。

- classify_request_error: 把 httpx 的网络异常归类为可重试 / 不可重试。
- raise_for_status: 非 2xx 响应统一转换为 ProtocolError / RateLimitError。
- iter_sse_json: 解析 OpenAI 风格的 server-sent events 行。
- read_json: 解析响应 JSON，失败时转换为 ProtocolError。
"""

import json
import socket
from typing import Any, Dict, Iterable, Iterator, Optional

import httpx

from chat_core.domain.exceptions import (
    CONNECTION_RESET,
    DNS_FAILURE,
    TIMEOUT,
    BusinessError,
    NetworkError,
    ProtocolError,
    RateLimitError,
    TransientNetworkError,
)

_DNS_HINTS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "temporary failure in name resolution",
    "no address associated with hostname",
)


def _cause_chain(exc: BaseException) -> Iterator[BaseException]:
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def classify_request_error(exc: httpx.RequestError, provider: str, timeout_message: Optional[str] = None) -> BusinessError:
    """把 httpx.RequestError 转换为业务异常（不抛出，由调用方 raise ... from exc）。"""

    if isinstance(exc, httpx.TimeoutException):
        return TransientNetworkError(TIMEOUT, timeout_message, provider=provider, detail=str(exc))
    chain = list(_cause_chain(exc))
    if any(isinstance(e, socket.gaierror) for e in chain) or any(
        hint in str(e).lower() for e in chain for hint in _DNS_HINTS
    ):
        return TransientNetworkError(DNS_FAILURE, provider=provider, detail=str(exc))
    if isinstance(exc, (httpx.ReadError, httpx.WriteError, httpx.RemoteProtocolError)) or any(
        isinstance(e, ConnectionResetError) for e in chain
    ):
        return TransientNetworkError(CONNECTION_RESET, provider=provider, detail=str(exc))
    return NetworkError(code="NETWORK_ERROR", message=str(exc) or type(exc).__name__, http_status=502, provider=provider)


def raise_for_status(resp: httpx.Response, provider: str) -> None:
    """非 2xx 响应抛出 ProtocolError；流式响应需先 read() 才能访问 text。"""

    if resp.status_code < 400:
        return
    reason = getattr(resp, "reason_phrase", "") or ""
    message = f"Server responded with status {resp.status_code} {reason}".rstrip()
    body = resp.text
    if resp.status_code == 429:
        raise RateLimitError(code="RATE_LIMIT", message=message, http_status=429, provider=provider, body=body)
    raise ProtocolError(code="API_ERROR", message=message, http_status=resp.status_code, provider=provider, body=body)


def read_json(resp: httpx.Response, provider: str) -> Dict[str, Any]:
    try:
        data = resp.json()
    except ValueError as e:
        raise ProtocolError(
            code="BAD_RESPONSE",
            message=f"{provider} returned a non-JSON response",
            http_status=502,
            provider=provider,
            detail=str(e),
        )
    if not isinstance(data, dict):
        raise ProtocolError(
            code="BAD_RESPONSE",
            message=f"{provider} returned an unexpected response body",
            http_status=502,
            provider=provider,
        )
    return data


def iter_sse_json(lines: Iterable[str]) -> Iterator[Dict[str, Any]]:
    """逐行解析 SSE，yield 每条 data 的 JSON 对象，跳过空行与 [DONE]。"""

    for line in lines:
        if not line:
            continue
        data_str = line
        if data_str.startswith("data:"):
            data_str = data_str[5:].strip()
        else:
            data_str = data_str.strip()
        if not data_str or data_str == "[DONE]":
            continue
        try:
            payload_chunk = json.loads(data_str)
        except json.JSONDecodeError:
            continue
        if isinstance(payload_chunk, dict):
            yield payload_chunk


def open_client(timeout: float) -> httpx.Client:
    return httpx.Client(timeout=timeout, trust_env=False)
