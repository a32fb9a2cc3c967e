import json
from pathlib import Path
from typing import Optional, Protocol

from chat_core.config.settings import settings
from chat_core.domain.exceptions import BusinessError
from chat_core.domain.models import ModelSettings


class SettingsSource(Protocol):
    """当前模型配置的只读来源，dispatch 每次调用读取一次。"""

    def load_current(self) -> Optional[ModelSettings]:
        ...


class JsonSettingsStore(SettingsSource):
    """从 JSON 文件读取 "current settings" 槽位。

    文件内容为 UI 保存的 camelCase 记录，例如
    {"provider": "deepseek", "apiKey": "...", "modelName": "deepseek-chat", ...}。
    """

    def __init__(self, path: str | Path | None = None):
        self._path = Path(path or settings.settings_file).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def load_current(self) -> Optional[ModelSettings]:
        if not self._path.exists():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise BusinessError(code="STORE_READ_ERROR", message=str(e))
        if data is None:
            return None
        if not isinstance(data, dict):
            raise BusinessError(
                code="STORE_READ_ERROR",
                message=f"{self._path} does not contain a settings object",
            )
        return ModelSettings.from_record(data)
