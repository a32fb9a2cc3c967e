"""LLM Provider 集成层。

该包下的模块负责：
- 定义 Provider 抽象接口 (base)。
- 维护 Provider 描述与端点/默认模型 (registry)。
- 提供各厂商的具体实现 (openai_client、deepseek_client、compatible_client、
  baidu_client、xunfei_client)。
- 提供公共能力：消息规整 (normalizer)、思维链拆分 (reasoning)、
  重试策略 (retry)、传输层错误归类 (transport)。
"""

from typing import Callable, Dict, Optional

from chat_core.config.settings import settings
from chat_core.domain.exceptions import ConfigurationError
from chat_core.domain.models import ProviderId
from chat_core.providers.base import ProviderClient
from chat_core.providers.baidu_client import BaiduClient
from chat_core.providers.compatible_client import CompatibleClient
from chat_core.providers.deepseek_client import DeepSeekClient
from chat_core.providers.openai_client import OpenAIClient
from chat_core.providers.retry import RetryPolicy
from chat_core.providers.xunfei_client import XunfeiClient

ProviderFactory = Callable[[Optional[RetryPolicy]], ProviderClient]

PROVIDER_FACTORIES: Dict[ProviderId, ProviderFactory] = {
    ProviderId.OPENAI: lambda policy: OpenAIClient(settings, policy),
    ProviderId.DEEPSEEK: lambda policy: DeepSeekClient(settings, policy),
    ProviderId.BAIDU: lambda policy: BaiduClient(settings, policy),
    ProviderId.XUNFEI: lambda policy: XunfeiClient(settings, policy),
    ProviderId.ALIBABA: lambda policy: CompatibleClient(ProviderId.ALIBABA, settings, policy),
    ProviderId.GUIJI: lambda policy: CompatibleClient(ProviderId.GUIJI, settings, policy),
    ProviderId.VOLCANO: lambda policy: CompatibleClient(ProviderId.VOLCANO, settings, policy),
}


def create_provider(name: str, retry_policy: Optional[RetryPolicy] = None) -> ProviderClient:
    """根据名称创建 Provider 实例，未知名称抛 ConfigurationError。"""

    provider_id = ProviderId.parse(name)
    if provider_id is None:
        raise ConfigurationError(
            code="UNSUPPORTED_PROVIDER",
            message="Unsupported API provider",
            provider=name,
        )
    return PROVIDER_FACTORIES[provider_id](retry_policy)
