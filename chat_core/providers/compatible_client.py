"""OpenAI 兼容族 Provider 适配器（阿里 DashScope、硅基流动、火山方舟）。

这些厂商共用 OpenAI 的请求/响应结构，区别只在于默认端点与默认模型，
二者都来自 registry；用户未填写 modelName / apiEndpoint 时必须使用默认值。
"""

from typing import Optional

from chat_core.config.settings import settings
from chat_core.domain.exceptions import ConfigurationError
from chat_core.domain.models import ConnectionProbeResult, ModelSettings, ProviderId
from chat_core.providers.openai_client import OpenAIClient
from chat_core.providers.registry import get_descriptor
from chat_core.providers.retry import RetryPolicy

COMPATIBLE_PROVIDERS = (ProviderId.ALIBABA, ProviderId.GUIJI, ProviderId.VOLCANO)


class CompatibleClient(OpenAIClient):
    """OpenAI 兼容接口客户端，一个实例对应一个具体厂商。"""

    def __init__(self, provider: ProviderId | str, cfg=settings, retry_policy: Optional[RetryPolicy] = None):
        pid = ProviderId.parse(provider)
        if pid not in COMPATIBLE_PROVIDERS:
            raise ConfigurationError(
                code="UNSUPPORTED_PROVIDER",
                message=f"{getattr(provider, 'value', provider)} is not an OpenAI-compatible provider",
            )
        super().__init__(cfg, retry_policy)
        self.descriptor = get_descriptor(pid)
        self.name = pid.value

    def probe(self, model_settings: ModelSettings) -> ConnectionProbeResult:
        return self._canary_probe(model_settings)
