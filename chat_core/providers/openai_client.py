"""OpenAI 风格 Provider 适配器。

接口均使用 chat/completions 端点：
- URL: {base_url}/chat/completions
- 认证: Authorization: Bearer <api_key>
- 流式: stream=true，返回 SSE，增量位于 choices[0].delta.content

本模块负责：

1. 把统一的对话列表转换为 {model, messages, temperature, max_tokens} 请求体。
2. 流式模式下逐条累积增量并回调累积文本；非流式模式下经 RetryPolicy 发起请求。
3. 把网络异常/HTTP 错误统一转换为业务异常。

DeepSeek 与 OpenAI 兼容族（阿里、硅基流动、火山方舟）复用本类，
只在 ProviderDescriptor 与连通性测试方式上有差异。
"""

from typing import Any, Dict, Optional, Sequence, Tuple

import httpx

from chat_core.config.settings import settings
from chat_core.domain.cancellation import CancellationToken
from chat_core.domain.exceptions import ConfigurationError, ProtocolError
from chat_core.domain.models import ChatMessage, ConnectionProbeResult, ModelSettings, ProgressCallback
from chat_core.providers.reasoning import StreamingAccumulator, compose_reply
from chat_core.providers.registry import (
    OPENAI,
    ProviderDescriptor,
    completions_url,
    default_model,
    models_url,
    resolve_endpoint,
)
from chat_core.providers.retry import RetryPolicy
from chat_core.providers.transport import (
    classify_request_error,
    iter_sse_json,
    open_client,
    raise_for_status,
    read_json,
)

CONNECTION_OK = "Connection succeeded"


class OpenAIClient:
    """OpenAI 提供方客户端实现。

    - name: Provider 名称（供日志/调试使用）。
    - complete: 对外统一调用入口，返回最终文本。
    - probe: 通过模型列表接口验证凭据。
    """

    name = "openai"
    descriptor: ProviderDescriptor = OPENAI

    def __init__(self, cfg=settings, retry_policy: Optional[RetryPolicy] = None):
        # Settings 里包含超时、重试等进程级配置
        self._settings = cfg
        self._retry = retry_policy or RetryPolicy.from_settings(cfg)

    # ---- 对话补全 ----

    def complete(
        self,
        conversation: Sequence[ChatMessage],
        model_settings: ModelSettings,
        on_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> str:
        self._require_key(model_settings)
        url = completions_url(self._base_url(model_settings))
        payload = self._build_payload(conversation, model_settings)
        if model_settings.stream and on_progress is not None:
            return self._complete_stream(url, payload, model_settings, on_progress, cancel_token)
        return self._retry.run(
            lambda: self._complete_once(url, payload, model_settings),
            provider=self.name,
            cancel_token=cancel_token,
        )

    def _complete_once(self, url: str, payload: Dict[str, Any], model_settings: ModelSettings) -> str:
        data = self._post_json(url, payload, model_settings)
        self._raise_vendor_error(data)
        reasoning, answer = self._parse_message(data)
        return compose_reply(reasoning, answer)

    def _complete_stream(
        self,
        url: str,
        payload: Dict[str, Any],
        model_settings: ModelSettings,
        on_progress: ProgressCallback,
        cancel_token: Optional[CancellationToken],
    ) -> str:
        """流式调用：每收到一个增量就回调一次累积文本，失败时不返回部分内容。"""

        payload = {**payload, "stream": True}
        accumulator = StreamingAccumulator()
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        try:
            with open_client(self._settings.http_timeout) as client:
                with client.stream("POST", url, json=payload, headers=self._headers(model_settings)) as resp:
                    if resp.status_code >= 400:
                        resp.read()
                        raise_for_status(resp, self.name)
                    for chunk in iter_sse_json(resp.iter_lines()):
                        if cancel_token is not None:
                            cancel_token.raise_if_cancelled()
                        self._raise_vendor_error(chunk)
                        reasoning, answer = self._parse_delta(chunk)
                        if not reasoning and not answer:
                            continue
                        on_progress(accumulator.feed(reasoning, answer))
        except httpx.RequestError as e:
            raise classify_request_error(e, self.name) from e
        return accumulator.compose()

    # ---- 连通性测试 ----

    def probe(self, model_settings: ModelSettings) -> ConnectionProbeResult:
        """请求模型列表，任何非错误响应都视为连接成功。"""

        self._require_key(model_settings)
        url = models_url(self._base_url(model_settings))
        try:
            with open_client(self._settings.http_timeout) as client:
                resp = client.get(url, headers=self._headers(model_settings))
        except httpx.RequestError as e:
            raise classify_request_error(e, self.name) from e
        raise_for_status(resp, self.name)
        return ConnectionProbeResult(success=True, message=CONNECTION_OK)

    def _canary_probe(self, model_settings: ModelSettings) -> ConnectionProbeResult:
        """发送一条 max_tokens 极小的对话请求验证凭据与模型。"""

        self._require_key(model_settings)
        url = completions_url(self._base_url(model_settings))
        payload = {
            "model": self._model(model_settings),
            "messages": [{"role": "user", "content": "Hello"}],
            "max_tokens": self._settings.probe_max_tokens,
        }
        self._post_json(url, payload, model_settings)
        return ConnectionProbeResult(success=True, message=CONNECTION_OK)

    # ---- 辅助方法 ----

    def _require_key(self, model_settings: ModelSettings) -> None:
        if not model_settings.api_key:
            raise ConfigurationError(code="MISSING_API_KEY", message=f"{self.name} API key not set")

    def _base_url(self, model_settings: ModelSettings) -> str:
        base = resolve_endpoint(self.descriptor.provider_id, model_settings.api_endpoint)
        if not base:
            raise ConfigurationError(code="MISSING_ENDPOINT", message=f"No API endpoint for {self.name}")
        return base

    def _model(self, model_settings: ModelSettings) -> str:
        return model_settings.model_name or default_model(self.descriptor.provider_id)

    def _headers(self, model_settings: ModelSettings) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {model_settings.api_key}",
            "Content-Type": "application/json",
        }

    def _build_payload(self, conversation: Sequence[ChatMessage], model_settings: ModelSettings) -> Dict[str, Any]:
        return {
            "model": self._model(model_settings),
            "messages": [m.to_payload() for m in conversation],
            "temperature": model_settings.temperature,
            "max_tokens": model_settings.max_tokens,
        }

    def _post_json(self, url: str, payload: Dict[str, Any], model_settings: ModelSettings) -> Dict[str, Any]:
        try:
            with open_client(self._settings.http_timeout) as client:
                resp = client.post(url, json=payload, headers=self._headers(model_settings))
        except httpx.RequestError as e:
            # 网络错误：DNS 失败、连接超时等，是否重试由 RetryPolicy 决定
            raise classify_request_error(e, self.name) from e
        raise_for_status(resp, self.name)
        return read_json(resp, self.name)

    def _raise_vendor_error(self, data: Dict[str, Any]) -> None:
        """HTTP 200 的响应体或 SSE 事件里携带 error 对象时转换为 ProtocolError。"""

        error = data.get("error")
        if not error:
            return
        if isinstance(error, dict):
            detail = error.get("message") or error.get("code") or error.get("type") or str(error)
        else:
            detail = str(error)
        raise ProtocolError(
            code="API_ERROR",
            message=f"{self.name} API error: {detail}",
            http_status=502,
            provider=self.name,
        )

    def _parse_message(self, data: Dict[str, Any]) -> Tuple[str, str]:
        """解析非流式响应 choices[0].message，返回 (reasoning, content)。"""

        choices = data.get("choices") or []
        message = choices[0].get("message") if choices and isinstance(choices[0], dict) else None
        if not isinstance(message, dict):
            raise ProtocolError(
                code="BAD_RESPONSE",
                message=f"{self.name} response has no choices[0].message",
                http_status=502,
                provider=self.name,
            )
        return self._split_fields(message)

    def _parse_delta(self, data: Dict[str, Any]) -> Tuple[str, str]:
        """解析流式增量 choices[0].delta，返回 (reasoning, content)。"""

        choices = data.get("choices") or []
        if not choices or not isinstance(choices[0], dict):
            return "", ""
        return self._split_fields(choices[0].get("delta") or {})

    def _split_fields(self, payload: Dict[str, Any]) -> Tuple[str, str]:
        content = payload.get("content") or ""
        if not self.descriptor.supports_reasoning_split:
            return "", content
        return payload.get("reasoning_content") or "", content
