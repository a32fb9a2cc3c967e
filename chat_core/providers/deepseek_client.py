"""DeepSeek Provider 适配器。

请求/响应结构与 OpenAI 相同，额外之处：
- 流式增量里可能同时带有 delta.reasoning_content（思维链）与 delta.content（正文），
  两者分别累积，按 reasoning 模块的规则组合后回调；
- 非流式响应的 message.reasoning_content 同样参与组合；
- 要求消息严格交替，由 Dispatch 层在调用前完成规整。
"""

from chat_core.domain.models import ConnectionProbeResult, ModelSettings
from chat_core.providers.openai_client import OpenAIClient
from chat_core.providers.registry import DEEPSEEK


class DeepSeekClient(OpenAIClient):
    """DeepSeek 客户端实现。"""

    name = "deepseek"
    descriptor = DEEPSEEK

    def probe(self, model_settings: ModelSettings) -> ConnectionProbeResult:
        return self._canary_probe(model_settings)
