"""对话序列规整。

部分厂商（DeepSeek、文心等）拒绝非交替或以 assistant 开头的消息序列，
发送前需要：

1. 合并相邻的同角色消息，内容之间用空行分隔。
2. 若第一条是 assistant，在最前面补一条 user 占位消息。
"""

from typing import List, Optional, Sequence

from chat_core.domain.models import ChatMessage

CONTINUE_PROMPT = "please continue"


def normalize(conversation: Sequence[ChatMessage]) -> List[ChatMessage]:
    """返回严格交替、以 user 开头的新消息列表，不修改入参。"""

    if len(conversation) <= 1:
        # 无可合并的消息，只需保证以 user 开头
        result = list(conversation)
    else:
        result = []
        last_role: Optional[str] = None
        for message in conversation:
            if message.role == last_role:
                last = result[-1]
                result[-1] = ChatMessage(role=last.role, content=f"{last.content}\n\n{message.content}")
            else:
                result.append(ChatMessage(role=message.role, content=message.content))
                last_role = message.role

    if result and result[0].role == "assistant":
        result.insert(0, ChatMessage(role="user", content=CONTINUE_PROMPT))
    return result
