"""Provider 描述与端点解析。

每个 Provider 一条 ProviderDescriptor，集中维护：

- 默认端点与默认模型：用户没有填写 apiEndpoint / modelName 时使用。
- 能力开关：是否拆分思维链、是否需要先换取 access_token、
  是否要求 user/assistant 严格交替。

端点解析规则：显式端点非空时永远优先；否则取默认值；未知 Provider 返回空串，
由调用方当作配置错误处理。"""

from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple, Union

from chat_core.domain.models import ProviderId


@dataclass(frozen=True)
class ProviderDescriptor:
    """某个 Provider 的静态描述。"""

    provider_id: ProviderId
    display_name: str
    default_endpoint: str
    default_model: str
    models: Tuple[str, ...] = field(default_factory=tuple)
    supports_reasoning_split: bool = False
    supports_token_exchange: bool = False
    requires_alternation: bool = False
    token_url: Optional[str] = None


OPENAI = ProviderDescriptor(
    provider_id=ProviderId.OPENAI,
    display_name="OpenAI",
    default_endpoint="https://api.openai.com/v1",
    default_model="gpt-4o-mini",
    models=("gpt-4o-mini", "gpt-4o"),
)

DEEPSEEK = ProviderDescriptor(
    provider_id=ProviderId.DEEPSEEK,
    display_name="DeepSeek",
    default_endpoint="https://api.deepseek.com/v1",
    default_model="deepseek-chat",
    models=("deepseek-chat", "deepseek-reasoner"),
    supports_reasoning_split=True,
    requires_alternation=True,
)

# 百度文心：先用 API_KEY:SECRET_KEY 换取 access_token，再带着 token 调用对话接口
BAIDU = ProviderDescriptor(
    provider_id=ProviderId.BAIDU,
    display_name="Baidu ERNIE",
    default_endpoint="https://aip.baidubce.com/rpc/2.0/ai_custom/v1/wenxinworkshop/chat/completions",
    default_model="ernie-4.0-8k",
    models=("ernie-4.0-8k", "ernie-3.5-8k", "ernie-speed-128k"),
    supports_token_exchange=True,
    requires_alternation=True,
    token_url="https://aip.baidubce.com/oauth/2.0/token",
)

# 讯飞星火：header/parameter/payload 三段式信封，对话被拍平成一段文本
XUNFEI = ProviderDescriptor(
    provider_id=ProviderId.XUNFEI,
    display_name="iFlytek Spark",
    default_endpoint="https://spark-api.xf-yun.com/v1.1/chat",
    default_model="general",
    models=("general", "generalv3", "generalv3.5"),
)

VOLCANO = ProviderDescriptor(
    provider_id=ProviderId.VOLCANO,
    display_name="Volcano Ark",
    default_endpoint="https://ark.cn-beijing.volces.com/api/v3",
    default_model="doubao-1-5-pro-256k-250115",
    models=(
        "doubao-1-5-vision-pro-32k-250115",
        "doubao-1-5-pro-256k-250115",
        "deepseek-r1-250120",
    ),
)

ALIBABA = ProviderDescriptor(
    provider_id=ProviderId.ALIBABA,
    display_name="Alibaba DashScope",
    default_endpoint="https://dashscope.aliyuncs.com/compatible-mode/v1",
    default_model="qwq-32b",
    models=("qwq-32b", "deepseek-r1", "deepseek-v3"),
)

# 硅基流动的默认端点本身就是完整的 chat/completions 地址
GUIJI = ProviderDescriptor(
    provider_id=ProviderId.GUIJI,
    display_name="SiliconFlow",
    default_endpoint="https://api.siliconflow.cn/v1/chat/completions",
    default_model="Qwen/QwQ-32B",
    models=(
        "Qwen/QwQ-32B",
        "deepseek-ai/DeepSeek-R1",
        "deepseek-ai/DeepSeek-V3",
        "internlm/internlm2_5-20b-chat",
    ),
)


PROVIDER_REGISTRY: Mapping[ProviderId, ProviderDescriptor] = {
    d.provider_id: d for d in (OPENAI, DEEPSEEK, BAIDU, XUNFEI, VOLCANO, ALIBABA, GUIJI)
}


def get_descriptor(provider_id: Union[str, ProviderId, None]) -> Optional[ProviderDescriptor]:
    """根据名称获取 ProviderDescriptor，名称不区分大小写，未知返回 None。"""

    if isinstance(provider_id, ProviderId):
        return PROVIDER_REGISTRY.get(provider_id)
    pid = ProviderId.parse(provider_id or "")
    return PROVIDER_REGISTRY.get(pid) if pid else None


def resolve_endpoint(provider_id: Union[str, ProviderId, None], explicit_endpoint: Optional[str] = None) -> str:
    if explicit_endpoint and explicit_endpoint.strip():
        return explicit_endpoint.strip()
    descriptor = get_descriptor(provider_id)
    return descriptor.default_endpoint if descriptor else ""


def default_model(provider_id: Union[str, ProviderId, None]) -> str:
    descriptor = get_descriptor(provider_id)
    return descriptor.default_model if descriptor else ""


def available_models(provider_id: Union[str, ProviderId, None]) -> Tuple[str, ...]:
    """设置界面可选的模型列表，未知 Provider 返回空元组。"""

    descriptor = get_descriptor(provider_id)
    return descriptor.models if descriptor else ()


def completions_url(base: str) -> str:
    """拼接 chat/completions 地址，已是完整地址时原样返回。"""

    base = base.rstrip("/")
    if base.endswith("/chat/completions"):
        return base
    return f"{base}/chat/completions"


def models_url(base: str) -> str:
    base = base.rstrip("/")
    if base.endswith("/chat/completions"):
        base = base[: -len("/chat/completions")]
    return f"{base}/models"
