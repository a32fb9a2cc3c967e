"""讯飞星火 Provider 适配器。

星火的 HTTP 接口使用三段式信封而不是 messages 数组：

    {
      "header": {"app_id": "...", "uid": "user"},
      "parameter": {"chat": {"domain": "...", "temperature": 0.5, "max_tokens": 2048}},
      "payload": {"message": {"text": "user: ...\\nassistant: ..."}}
    }

整段对话被拍平为逐行 "role: content" 的文本，这是协议限制，不能改为逐条发送。
认证使用 apiKey 中冒号后的 secret 作为 Bearer；答案位于 payload.text.content。
"""

from typing import Any, Dict, Optional, Sequence, Tuple

import httpx

from chat_core.config.settings import settings
from chat_core.domain.cancellation import CancellationToken
from chat_core.domain.exceptions import ConfigurationError, ProtocolError
from chat_core.domain.models import ChatMessage, ConnectionProbeResult, ModelSettings, ProgressCallback
from chat_core.providers.registry import XUNFEI, default_model, resolve_endpoint
from chat_core.providers.retry import RetryPolicy
from chat_core.providers.transport import classify_request_error, open_client, raise_for_status, read_json


def split_app_key(api_key: str) -> Tuple[str, str]:
    """拆分 "APP_ID:API_SECRET"，任一半缺失时抛 ConfigurationError。"""

    app_id, _, secret = (api_key or "").partition(":")
    if not app_id or not secret:
        raise ConfigurationError(
            code="MALFORMED_API_KEY",
            message="iFlytek Spark API key must use the APP_ID:API_SECRET format",
            provider="xunfei",
        )
    return app_id, secret


def flatten_transcript(conversation: Sequence[ChatMessage]) -> str:
    return "\n".join(f"{m.role}: {m.content}" for m in conversation)


class XunfeiClient:
    """讯飞星火客户端实现。

    信封协议没有增量形式，提供 on_progress 时只会在拿到完整答案后回调一次。
    """

    name = "xunfei"
    descriptor = XUNFEI

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
        app_id, secret = split_app_key(model_settings.api_key)
        url = resolve_endpoint(self.descriptor.provider_id, model_settings.api_endpoint)
        envelope = self._build_envelope(conversation, model_settings, app_id)
        content = self._retry.run(
            lambda: self._post(url, envelope, secret),
            provider=self.name,
            cancel_token=cancel_token,
        )
        if model_settings.stream and on_progress is not None and content:
            on_progress(content)
        return content

    def probe(self, model_settings: ModelSettings) -> ConnectionProbeResult:
        """星火不做真实调用，只检查 appid.apiKey.apiSecret 三段式格式。"""

        parts = (model_settings.api_key or "").split(".")
        if len(parts) != 3 or not all(parts):
            return ConnectionProbeResult(
                success=False,
                message="iFlytek Spark API key format is invalid, expected appid.apiKey.apiSecret",
            )
        return ConnectionProbeResult(
            success=True,
            message="Key format looks valid; it will be verified on the first real request",
        )

    def _build_envelope(
        self,
        conversation: Sequence[ChatMessage],
        model_settings: ModelSettings,
        app_id: str,
    ) -> Dict[str, Any]:
        return {
            "header": {"app_id": app_id, "uid": "user"},
            "parameter": {
                "chat": {
                    "domain": model_settings.model_name or default_model(self.descriptor.provider_id),
                    "temperature": model_settings.temperature,
                    "max_tokens": model_settings.max_tokens,
                }
            },
            "payload": {"message": {"text": flatten_transcript(conversation)}},
        }

    def _post(self, url: str, envelope: Dict[str, Any], secret: str) -> str:
        try:
            with open_client(self._settings.http_timeout) as client:
                resp = client.post(
                    url,
                    json=envelope,
                    headers={
                        "Authorization": f"Bearer {secret}",
                        "Content-Type": "application/json",
                    },
                )
        except httpx.RequestError as e:
            raise classify_request_error(e, self.name) from e
        raise_for_status(resp, self.name)
        data = read_json(resp, self.name)
        payload = data.get("payload")
        text = payload.get("text") if isinstance(payload, dict) else None
        if not isinstance(text, dict) or text.get("content") is None:
            raise ProtocolError(
                code="BAD_RESPONSE",
                message="iFlytek Spark response has no payload.text.content",
                http_status=502,
                provider=self.name,
            )
        return text["content"]
