"""Chat Core 顶层包。

该包把多家厂商的对话补全接口统一为同一套调用约定：
配置加载、消息规整、Provider 适配、流式累积与思维链拆分、
重试与错误归类，以及连通性测试。
"""

from chat_core.api.service import dispatch, probe_connection
from chat_core.domain.cancellation import CancellationToken
from chat_core.domain.models import ChatMessage, ModelSettings
from chat_core.providers.registry import available_models

__all__ = [
    "ChatMessage",
    "CancellationToken",
    "ModelSettings",
    "available_models",
    "dispatch",
    "probe_connection",
]
