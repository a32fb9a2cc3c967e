"""百度文心 Provider 适配器。

文心接口需要先换取 access_token：

1. apiKey 形如 "API_KEY:SECRET_KEY"，按第一个冒号拆分，任一半缺失直接报配置错误，
   不发起任何网络请求。
2. POST {token_url}?grant_type=client_credentials&client_id=..&client_secret=..（无请求体，
   30s 超时）得到 access_token。
3. 对话请求把 access_token 作为 query 参数，60s 超时；答案位于 result 字段。

access_token 不缓存、不刷新，每次逻辑请求都重新换取。
文心在 HTTP 200 的响应体里用 error_code/error_msg 报错，这里统一转换为 ProtocolError。
"""

from typing import Any, Dict, Optional, Sequence, Tuple

import httpx

from chat_core.config.settings import settings
from chat_core.domain.cancellation import CancellationToken
from chat_core.domain.exceptions import ConfigurationError, ProtocolError
from chat_core.domain.models import ChatMessage, ConnectionProbeResult, ModelSettings, ProgressCallback
from chat_core.providers.registry import BAIDU, default_model, resolve_endpoint
from chat_core.providers.retry import RetryPolicy
from chat_core.providers.transport import (
    classify_request_error,
    iter_sse_json,
    open_client,
    raise_for_status,
    read_json,
)


def split_compound_key(api_key: str) -> Tuple[str, str]:
    """拆分 "API_KEY:SECRET_KEY"，格式不对时抛 ConfigurationError。"""

    client_id, _, client_secret = (api_key or "").partition(":")
    if not client_id or not client_secret:
        raise ConfigurationError(
            code="MALFORMED_API_KEY",
            message="Baidu API key must use the API_KEY:SECRET_KEY format",
            provider="baidu",
        )
    return client_id, client_secret


class BaiduClient:
    """百度文心客户端实现。"""

    name = "baidu"
    descriptor = BAIDU

    def __init__(self, cfg=settings, retry_policy: Optional[RetryPolicy] = None):
        self._settings = cfg
        self._retry = retry_policy or RetryPolicy.from_settings(cfg)

    def complete(
        self,
        conversation: Sequence[ChatMessage],
        model_settings: ModelSettings,
        on_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> str:
        credentials = split_compound_key(model_settings.api_key)
        url = resolve_endpoint(self.descriptor.provider_id, model_settings.api_endpoint)
        payload = self._build_payload(conversation, model_settings)
        if model_settings.stream and on_progress is not None:
            return self._complete_stream(url, payload, credentials, on_progress, cancel_token)
        # 换取 token 与对话请求合并为一次尝试，一起参与重试
        return self._retry.run(
            lambda: self._complete_once(url, payload, credentials),
            provider=self.name,
            cancel_token=cancel_token,
        )

    def probe(self, model_settings: ModelSettings) -> ConnectionProbeResult:
        """只做 access_token 换取，换取成功即视为连通。"""

        self.fetch_access_token(*split_compound_key(model_settings.api_key))
        return ConnectionProbeResult(success=True, message="Connection succeeded")

    def fetch_access_token(self, client_id: str, client_secret: str) -> str:
        params = {
            "grant_type": "client_credentials",
            "client_id": client_id,
            "client_secret": client_secret,
        }
        try:
            with open_client(self._settings.token_timeout) as client:
                resp = client.post(self.descriptor.token_url, params=params)
        except httpx.RequestError as e:
            raise classify_request_error(
                e, self.name, timeout_message="Timed out while fetching the Baidu access token"
            ) from e
        data = self._read_checked(resp)
        token = data.get("access_token")
        if not token:
            raise ProtocolError(
                code="BAD_RESPONSE",
                message="Baidu token response has no access_token",
                http_status=502,
                provider=self.name,
            )
        return token

    # ---- 内部实现 ----

    def _complete_once(self, url: str, payload: Dict[str, Any], credentials: Tuple[str, str]) -> str:
        token = self.fetch_access_token(*credentials)
        try:
            with open_client(self._settings.http_timeout) as client:
                resp = client.post(
                    url,
                    params={"access_token": token},
                    json=payload,
                    headers={"Content-Type": "application/json"},
                )
        except httpx.RequestError as e:
            raise classify_request_error(e, self.name) from e
        data = self._read_checked(resp)
        result = data.get("result")
        if result is None:
            raise ProtocolError(
                code="BAD_RESPONSE",
                message="Baidu response has no result field",
                http_status=502,
                provider=self.name,
            )
        return result

    def _complete_stream(
        self,
        url: str,
        payload: Dict[str, Any],
        credentials: Tuple[str, str],
        on_progress: ProgressCallback,
        cancel_token: Optional[CancellationToken],
    ) -> str:
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        token = self.fetch_access_token(*credentials)
        full_content = ""
        try:
            with open_client(self._settings.http_timeout) as client:
                with client.stream(
                    "POST",
                    url,
                    params={"access_token": token},
                    json={**payload, "stream": True},
                    headers={"Content-Type": "application/json"},
                ) as resp:
                    if resp.status_code >= 400:
                        resp.read()
                        raise_for_status(resp, self.name)
                    for event in iter_sse_json(resp.iter_lines()):
                        if cancel_token is not None:
                            cancel_token.raise_if_cancelled()
                        self._raise_vendor_error(event, resp.status_code)
                        fragment = event.get("result") or ""
                        if not fragment:
                            continue
                        full_content += fragment
                        on_progress(full_content)
        except httpx.RequestError as e:
            raise classify_request_error(e, self.name) from e
        return full_content

    def _build_payload(self, conversation: Sequence[ChatMessage], model_settings: ModelSettings) -> Dict[str, Any]:
        return {
            "model": model_settings.model_name or default_model(self.descriptor.provider_id),
            "messages": [m.to_payload() for m in conversation],
            "temperature": model_settings.temperature,
            "max_tokens": model_settings.max_tokens,
        }

    def _read_checked(self, resp: httpx.Response) -> Dict[str, Any]:
        """优先使用厂商错误体中的说明，其次才是通用的 HTTP 状态错误。"""

        try:
            data = resp.json()
        except ValueError:
            data = None
        if isinstance(data, dict):
            self._raise_vendor_error(data, resp.status_code)
        raise_for_status(resp, self.name)
        return read_json(resp, self.name)

    def _raise_vendor_error(self, data: Dict[str, Any], status_code: int) -> None:
        if data.get("error_code"):
            raise ProtocolError(
                code="API_ERROR",
                message=f"Baidu API error {data['error_code']}: {data.get('error_msg', '')}".rstrip(": "),
                http_status=status_code if status_code >= 400 else 502,
                provider=self.name,
            )
        if data.get("error"):
            raise ProtocolError(
                code="API_ERROR",
                message=f"Baidu API error: {data.get('error_description') or data['error']}",
                http_status=status_code if status_code >= 400 else 401,
                provider=self.name,
            )
