"""统一的对话与配置数据模型。

本模块定义了 Dispatch 层在不同 Provider 之间共享的标准数据结构：

- ProviderId: 已知 Provider 的封闭枚举。
- ChatMessage: 一条对话消息（仅 user/assistant 两种角色）。
- ModelSettings: 单次调用使用的模型配置快照（只读）。
- ConnectionProbeResult: 连通性测试结果。

所有 Provider 适配器都只依赖这些模型，
并负责在各自的 API JSON 和这些模型之间做转换。
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Literal, Mapping, Optional

from chat_core.domain.exceptions import ConfigurationError


class ProviderId(str, Enum):
    """已知 Provider 标识，新增厂商时在这里加一个成员并注册对应 Adapter。"""

    OPENAI = "openai"
    DEEPSEEK = "deepseek"
    BAIDU = "baidu"
    XUNFEI = "xunfei"
    ALIBABA = "alibaba"
    GUIJI = "guiji"
    VOLCANO = "volcano"

    @classmethod
    def parse(cls, value: str) -> Optional["ProviderId"]:
        """不区分大小写地解析 provider 名称，未知名称返回 None。"""

        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return None


# 对话角色（与 OpenAI 等厂商的 role 字段对应）
Role = Literal["user", "assistant"]

# 流式进度回调：参数为截至目前的累积文本
ProgressCallback = Callable[[str], None]


@dataclass
class ChatMessage:
    """一条对话消息。

    - role: user 或 assistant。
    - content: 纯文本内容。
    - timestamp: 可选的毫秒时间戳，仅供 UI 展示，不发给 Provider。
    - reasoning_content: 可选的思维链内容，同样不发给 Provider。
    """

    role: Role
    content: str
    timestamp: Optional[int] = None
    reasoning_content: Optional[str] = None

    def to_payload(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}

    @classmethod
    def from_record(cls, data: Mapping[str, Any]) -> "ChatMessage":
        """从 UI 存储的 camelCase 记录构造消息。"""

        return cls(
            role=data["role"],
            content=data.get("content") or "",
            timestamp=data.get("timestamp"),
            reasoning_content=data.get("reasoningContent"),
        )


Conversation = List[ChatMessage]


@dataclass(frozen=True)
class ModelSettings:
    """单次 dispatch 使用的模型配置快照。

    每次调用都从配置源重新读取，不跨调用缓存，
    避免用户更新 API Key 后仍然使用旧值。
    """

    provider: str
    api_key: str
    model_name: str = ""
    api_endpoint: Optional[str] = None
    temperature: float = 0.7
    max_tokens: int = 2048
    stream: bool = True

    def __post_init__(self) -> None:
        if self.temperature < 0:
            raise ConfigurationError(
                code="INVALID_TEMPERATURE",
                message=f"temperature must be >= 0, got {self.temperature}",
            )
        if self.max_tokens <= 0:
            raise ConfigurationError(
                code="INVALID_MAX_TOKENS",
                message=f"max_tokens must be a positive integer, got {self.max_tokens}",
            )

    @property
    def provider_id(self) -> Optional[ProviderId]:
        return ProviderId.parse(self.provider)

    @classmethod
    def from_record(cls, data: Mapping[str, Any]) -> "ModelSettings":
        """解析设置存储中的 camelCase 记录。

        未知字段（如 supportedFileTypes、createdAt）直接忽略；
        缺少 stream 字段时默认开启流式。
        """

        stream = data.get("stream")
        try:
            temperature = float(data.get("temperature", 0.7))
            max_tokens = int(data.get("maxTokens", 2048))
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                code="INVALID_SETTINGS",
                message=f"Stored model settings contain an invalid number: {e}",
            ) from e
        return cls(
            provider=str(data.get("provider") or ""),
            api_key=str(data.get("apiKey") or ""),
            model_name=str(data.get("modelName") or ""),
            api_endpoint=data.get("apiEndpoint") or None,
            temperature=temperature,
            max_tokens=max_tokens,
            stream=True if stream is None else bool(stream),
        )


@dataclass
class ConnectionProbeResult:
    """连通性测试结果，仅在一次测试中短暂存在。"""

    success: bool
    message: str
