"""非流式请求的重试策略。

所有 Adapter 共用同一个 RetryPolicy，底层由 tenacity.Retrying 驱动：

- 只重试 TransientNetworkError 且 category 在 retryable 集合内的错误；
- 其他错误（配置错误、HTTP 错误、未分类异常）第一次出现就直接抛出；
- 第 n 次失败后等待 backoff(n) 秒，默认线性 n * 1s；
- 达到 max_attempts 后抛出最后一次的错误，其 message 已是面向用户的文案。
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, FrozenSet, Optional, TypeVar

from tenacity import RetryCallState, Retrying, retry_if_exception, stop_after_attempt

from chat_core.config.settings import settings
from chat_core.domain.cancellation import CancellationToken
from chat_core.domain.exceptions import CONNECTION_RESET, DNS_FAILURE, TIMEOUT, TransientNetworkError
from chat_core.infrastructure.logging.logger import logger

T = TypeVar("T")

TRANSIENT_CATEGORIES: FrozenSet[str] = frozenset({TIMEOUT, CONNECTION_RESET, DNS_FAILURE})


def linear_backoff(attempt: int, base: float = 1.0) -> float:
    return attempt * base


@dataclass
class RetryPolicy:
    max_attempts: int = 3
    retryable: FrozenSet[str] = TRANSIENT_CATEGORIES
    backoff: Callable[[int], float] = linear_backoff
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    @classmethod
    def from_settings(cls, cfg=settings) -> "RetryPolicy":
        base = cfg.retry_backoff_seconds
        return cls(
            max_attempts=cfg.retry_max_attempts,
            backoff=lambda attempt: linear_backoff(attempt, base),
        )

    def is_retryable(self, exc: BaseException) -> bool:
        return isinstance(exc, TransientNetworkError) and exc.category in self.retryable

    def run(
        self,
        call: Callable[[], T],
        *,
        provider: str = "",
        cancel_token: Optional[CancellationToken] = None,
    ) -> T:
        """执行 call()，按策略重试瞬时网络错误。"""

        attempts = 0

        def before(retry_state: RetryCallState) -> None:
            nonlocal attempts
            attempts = retry_state.attempt_number
            # 每次尝试前检查取消，抛出的异常不会被当作可重试错误
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()

        def wait(retry_state: RetryCallState) -> float:
            return self.backoff(retry_state.attempt_number)

        def before_sleep(retry_state: RetryCallState) -> None:
            exc = retry_state.outcome.exception()
            logger.warning(
                f"{provider} request failed ({exc.category}), retrying in {retry_state.upcoming_sleep}s",
                extra={
                    "extra": {
                        "provider": provider,
                        "attempt": retry_state.attempt_number,
                        "max_attempts": self.max_attempts,
                        "category": exc.category,
                    }
                },
            )

        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait,
            retry=retry_if_exception(self.is_retryable),
            before=before,
            before_sleep=before_sleep,
            sleep=self.sleep,
            reraise=True,
        )
        try:
            return retrying(call)
        except TransientNetworkError as exc:
            logger.log(
                logging.ERROR,
                f"{provider} request failed after {attempts} attempt(s): {exc.message}",
                extra={"extra": {"provider": provider, "attempt": attempts, "category": exc.category}},
            )
            raise
