"""思维链（reasoning）与正文拆分。

支持 reasoning_content 的厂商会在同一个流里交错返回思维链片段和正文片段。
两部分分别累积，展示时组合为：

    <div class="reasoning-content">{思维链}</div>

    {正文}

思维链为空时只返回正文。中间进度与最终结果使用同一条组合规则。
"""

import re
from dataclasses import dataclass
from typing import Optional, Tuple

REASONING_OPEN = '<div class="reasoning-content">'
REASONING_CLOSE = "</div>"

_REASONING_RE = re.compile(
    re.escape(REASONING_OPEN) + r"(?P<reasoning>.*?)" + re.escape(REASONING_CLOSE) + r"\n\n",
    re.DOTALL,
)


def compose_reply(reasoning: str, answer: str) -> str:
    if reasoning:
        return f"{REASONING_OPEN}{reasoning}{REASONING_CLOSE}\n\n{answer}"
    return answer


def split_reply(text: str) -> Tuple[str, str]:
    """把 compose_reply 的结果拆回 (reasoning, answer)。

    便于调用方把思维链单独存到 ChatMessage.reasoning_content。
    """

    match = _REASONING_RE.match(text or "")
    if not match:
        return "", text or ""
    return match.group("reasoning"), text[match.end():]


@dataclass
class StreamingAccumulator:
    """单次调用内的累积状态，随调用结束丢弃。"""

    reasoning_buffer: str = ""
    answer_buffer: str = ""

    def feed(self, reasoning: Optional[str] = None, answer: Optional[str] = None) -> str:
        """追加片段并返回组合后的展示文本。"""

        if reasoning:
            self.reasoning_buffer += reasoning
        if answer:
            self.answer_buffer += answer
        return self.compose()

    def compose(self) -> str:
        return compose_reply(self.reasoning_buffer, self.answer_buffer)
