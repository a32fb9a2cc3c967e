"""连通性测试。

按 Provider 选择最省钱的验证方式（模型列表、极小的对话请求、仅换取 token、
仅检查密钥格式），任何失败都收敛为 ConnectionProbeResult(success=False)，从不抛异常。
"""

import logging

from chat_core.domain.exceptions import BusinessError
from chat_core.domain.models import ConnectionProbeResult, ModelSettings
from chat_core.infrastructure.logging.logger import logger
from chat_core.providers import create_provider
from chat_core.providers.registry import get_descriptor

UNSUPPORTED_MESSAGE = "Unsupported API provider"


def probe_connection(model_settings: ModelSettings) -> ConnectionProbeResult:
    log_ctx = {"provider": model_settings.provider}
    descriptor = get_descriptor(model_settings.provider)
    if descriptor is None:
        return ConnectionProbeResult(success=False, message=UNSUPPORTED_MESSAGE)
    try:
        result = create_provider(model_settings.provider).probe(model_settings)
    except BusinessError as e:
        result = ConnectionProbeResult(
            success=False,
            message=f"{descriptor.display_name} connection failed: {e.message}",
        )
    except Exception as e:  # noqa: BLE001 - probe results must never raise
        result = ConnectionProbeResult(
            success=False,
            message=f"{descriptor.display_name} connection failed: {str(e) or type(e).__name__}",
        )
    logger.log(
        logging.INFO if result.success else logging.WARNING,
        f"Connection probe {'succeeded' if result.success else 'failed'}",
        extra={"extra": {**log_ctx, "probe_message": result.message}},
    )
    return result
