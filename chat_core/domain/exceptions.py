"""统一业务异常模型。

所有跨模块抛出的业务级错误都继承自 BusinessError，
Dispatch 层最终会把它们统一包装为 DispatchError 交给调用方。
"""

from typing import Optional


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "MISSING_API_KEY"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 provider、attempts 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class ConfigurationError(BusinessError):
    """配置缺失或不合法：API Key 为空、Provider 不支持、复合密钥格式错误等。"""


class NetworkError(BusinessError):
    """不可重试的网络层错误，例如连接被拒绝。"""


TIMEOUT = "timeout"
CONNECTION_RESET = "connection_reset"
DNS_FAILURE = "dns"

TRANSIENT_MESSAGES = {
    TIMEOUT: "Request timed out, please try again later",
    CONNECTION_RESET: "Connection was reset by the server, please try again later",
    DNS_FAILURE: "Cannot resolve API host, check the network or endpoint configuration",
}


class TransientNetworkError(NetworkError):
    """可重试的瞬时网络错误。

    category 取值为 TIMEOUT / CONNECTION_RESET / DNS_FAILURE，
    重试策略只根据 category 判断是否继续重试。
    """

    def __init__(self, category: str, message: Optional[str] = None, **extra):
        self.category = category
        super().__init__(
            code=f"NETWORK_{category.upper()}",
            message=message or TRANSIENT_MESSAGES.get(category, category),
            http_status=504 if category == TIMEOUT else 502,
            **extra,
        )


class ProtocolError(BusinessError):
    """第三方 API 返回非 2xx、厂商错误体或无法识别的响应结构。"""


class RateLimitError(ProtocolError):
    """Provider 限流（HTTP 429）。"""


class RequestCancelledError(BusinessError):
    """调用方通过 CancellationToken 取消了进行中的请求。"""


class DispatchError(BusinessError):
    """Dispatch 对外唯一的错误形态，message 形如 "AI response failed: <reason>"。"""

    def __init__(self, reason: str, cause: Optional[BaseException] = None, **extra):
        self.reason = reason
        self.cause = cause
        http_status = getattr(cause, "http_status", 500)
        super().__init__(
            code="AI_RESPONSE_FAILED",
            message=f"AI response failed: {reason}",
            http_status=http_status,
            **extra,
        )
