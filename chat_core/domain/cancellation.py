"""请求级取消令牌。

Adapter 在读取每个流式 chunk 之前、以及每次重试之前检查令牌，
一旦被取消即抛出 RequestCancelledError，已累积的部分内容直接丢弃。
"""

from threading import Lock
from typing import Optional

from chat_core.domain.exceptions import RequestCancelledError


class CancellationToken:
    """协作式取消令牌，可从其他线程调用 cancel()。"""

    def __init__(self) -> None:
        self._lock = Lock()
        self._cancelled = False
        self._reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: Optional[str] = None) -> None:
        """请求取消；重复调用只保留第一次的 reason。"""

        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            self._reason = reason

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise RequestCancelledError(
                code="REQUEST_CANCELLED",
                message=self._reason or "Request cancelled",
                http_status=499,
            )
