import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from chat_core.config.settings import settings

LOGGER_NAME = "chat_core"
REDACTED_LENGTH = 64


class JsonLineFormatter(logging.Formatter):
    """每条记录输出一行 JSON，extra={"extra": {...}} 中的字段平铺到顶层。"""

    def __init__(self, redact_content: bool = False):
        super().__init__()
        self._redact_content = redact_content

    def format(self, record: logging.LogRecord) -> str:
        msg = record.getMessage()
        if self._redact_content:
            msg = msg[:REDACTED_LENGTH]
        entry = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
            "level": record.levelname,
            "name": record.name,
            "msg": msg,
        }
        fields = getattr(record, "extra", None)
        if isinstance(fields, dict):
            entry.update(fields)
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def setup_logger(log_dir: str | Path | None = None) -> logging.Logger:
    """配置 chat_core 日志器，重复调用不会叠加 handler。"""

    log = logging.getLogger(LOGGER_NAME)
    log.setLevel(settings.log_level)
    if any(getattr(h, "_chat_core", False) for h in log.handlers):
        return log

    target = Path(log_dir or settings.log_dir)
    target.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(target / f"{LOGGER_NAME}.log", encoding="utf-8")
    handler.setFormatter(JsonLineFormatter(settings.log_redact_content))
    handler._chat_core = True  # type: ignore[attr-defined]
    log.addHandler(handler)
    return log


logger = setup_logger()
