"""进程级配置。

来源优先级：构造参数 > 环境变量 > .env > config.yaml > secrets 目录。
环境变量统一使用 CHAT_CORE_ 前缀，例如 CHAT_CORE_HTTP_TIMEOUT=90。

模型配置（provider、apiKey 等）不在这里，dispatch 每次调用时
通过 SettingsSource 重新读取。
"""

import os
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)


def find_config_file() -> Optional[Path]:
    """定位 config.yaml：CHAT_CORE_CONFIG_FILE 优先，其次当前目录、项目根目录。"""

    explicit = os.getenv("CHAT_CORE_CONFIG_FILE")
    if explicit:
        return Path(explicit).expanduser()
    for candidate in (Path.cwd() / "config.yaml", Path(__file__).resolve().parents[2] / "config.yaml"):
        if candidate.is_file():
            return candidate
    return None


class Settings(BaseSettings):
    settings_file: str = Field(
        default=".storage/model_settings.json",
        description="current settings 槽位所在的 JSON 文件",
    )
    http_timeout: float = Field(default=60.0, ge=1.0, description="对话补全请求超时（秒）")
    token_timeout: float = Field(default=30.0, ge=1.0, description="百度 access_token 换取超时（秒）")
    retry_max_attempts: int = Field(default=3, ge=1, le=10)
    # 第 n 次失败后等待 n * retry_backoff_seconds
    retry_backoff_seconds: float = Field(default=1.0, ge=0.0)
    probe_max_tokens: int = Field(default=5, ge=1, le=5, description="连通性测试的最大输出 token 数")
    log_dir: str = Field(default="logs")
    log_level: str = Field(default="INFO")
    log_redact_content: bool = Field(default=False, description="为真时日志正文截断为 64 个字符")

    model_config = SettingsConfigDict(
        env_prefix="CHAT_CORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {v}")
        return level

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        sources = [init_settings, env_settings, dotenv_settings]
        config_file = find_config_file()
        if config_file is not None:
            sources.append(YamlConfigSettingsSource(settings_cls, yaml_file=config_file))
        sources.append(file_secret_settings)
        return tuple(sources)


settings = Settings()
