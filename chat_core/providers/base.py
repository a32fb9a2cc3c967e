"""Provider 抽象接口。

Dispatch 层不直接依赖具体厂商的 HTTP 协议，而是依赖此协议：

- 每个厂商实现一个 ProviderClient（如 DeepSeekClient、BaiduClient）。
- complete: 把统一的对话列表转成具体 API 请求，返回最终文本；
  提供 on_progress 时按累积文本回调进度。
- probe: 用最小代价验证凭据/连通性，失败时直接抛异常，由 prober 统一捕获。

这样新增厂商只需新增一个 ProviderId 成员和一个 Client，而无需修改分支链。
"""

from typing import Optional, Protocol, Sequence

from chat_core.domain.cancellation import CancellationToken
from chat_core.domain.models import ChatMessage, ConnectionProbeResult, ModelSettings, ProgressCallback


class ProviderClient(Protocol):
    """LLM Provider 客户端协议。"""

    name: str

    def complete(
        self,
        conversation: Sequence[ChatMessage],
        model_settings: ModelSettings,
        on_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> str:
        ...

    def probe(self, model_settings: ModelSettings) -> ConnectionProbeResult:
        ...
