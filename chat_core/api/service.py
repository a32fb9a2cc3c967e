"""对外 API 服务模块。

提供两个函数供上层应用（UI、脚本）调用：

- dispatch: 把一段对话发送给当前配置的模型，返回最终文本；
- probe_connection: 测试某份模型配置是否可用，从不抛异常。
"""

import time
from typing import Any, Dict, Optional, Sequence
from uuid import uuid4

from chat_core.config.settings import settings
from chat_core.domain.cancellation import CancellationToken
from chat_core.domain.exceptions import BusinessError, ConfigurationError, DispatchError
from chat_core.domain.models import ChatMessage, ModelSettings, ProgressCallback
from chat_core.infrastructure.logging.logger import logger
from chat_core.infrastructure.storage.settings_store import JsonSettingsStore, SettingsSource
from chat_core.providers import create_provider
from chat_core.providers.normalizer import normalize
from chat_core.providers.prober import probe_connection
from chat_core.providers.registry import get_descriptor
from chat_core.providers.retry import RetryPolicy

__all__ = ["dispatch", "load_model_settings", "probe_connection"]


def load_model_settings(settings_source: Optional[SettingsSource] = None) -> Optional[ModelSettings]:
    """从配置源读取一次当前模型配置，默认读取 settings.settings_file。"""

    source = settings_source or JsonSettingsStore(settings.settings_file)
    return source.load_current()


def dispatch(
    conversation: Sequence[ChatMessage],
    on_progress: Optional[ProgressCallback] = None,
    *,
    model_settings: Optional[ModelSettings] = None,
    settings_source: Optional[SettingsSource] = None,
    cancel_token: Optional[CancellationToken] = None,
    retry_policy: Optional[RetryPolicy] = None,
) -> str:
    """把对话发送给当前配置的 Provider。

    Args:
        conversation: 按时间顺序排列的对话消息
        on_progress: 可选的进度回调，参数为截至目前的累积文本
        model_settings: 显式传入的模型配置；为空时从 settings_source 读取一次
        settings_source: 模型配置来源，默认是 JSON 文件
        cancel_token: 可选的取消令牌
        retry_policy: 覆盖默认的重试策略（主要用于测试）

    Returns:
        模型的最终回答（含思维链时为组合后的文本）

    Raises:
        ConfigurationError: 没有模型配置或 API Key 为空
        DispatchError: 其余所有失败，message 形如 "AI response failed: <reason>"
    """
    if model_settings is None:
        model_settings = load_model_settings(settings_source)
    if model_settings is None or not model_settings.api_key.strip():
        raise ConfigurationError(
            code="MISSING_API_KEY",
            message="Please configure an API key in the settings first",
        )

    start_time = time.time()
    log_ctx: Dict[str, Any] = {
        "trace_id": f"tr-{uuid4().hex}",
        "provider": model_settings.provider,
        "model": model_settings.model_name,
        "stream": bool(model_settings.stream and on_progress is not None),
    }
    try:
        client = create_provider(model_settings.provider, retry_policy)
        descriptor = get_descriptor(model_settings.provider)
        if descriptor is not None and descriptor.requires_alternation:
            messages = normalize(conversation)
        else:
            messages = list(conversation)
        log_ctx["messages"] = len(messages)
        result = client.complete(messages, model_settings, on_progress, cancel_token)
    except Exception as e:
        reason = e.message if isinstance(e, BusinessError) else (str(e) or type(e).__name__)
        logger.error(f"AI request failed: {reason}", extra={"extra": {
            **log_ctx,
            "error_type": type(e).__name__,
            "error": reason,
        }})
        raise DispatchError(reason, cause=e, provider=model_settings.provider) from e

    logger.info("AI request completed", extra={"extra": {
        **log_ctx,
        "elapsed_seconds": round(time.time() - start_time, 2),
        "reply_chars": len(result),
    }})
    return result
