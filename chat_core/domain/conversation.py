"""内存中的对话记录存储。

ConversationStore 只保存 user/assistant 消息；system 指令来自配置，
在构造请求时由 system_message() 临时合成并放在最前面，从不写入记录。
"""

from typing import List, Optional, Tuple

from chat_core.domain.exceptions import ValidationError
from chat_core.domain.models import Message


class ConversationStore:
    def __init__(self, system_instruction: str = ""):
        self.system_instruction = system_instruction
        self._messages: List[Message] = []

    def append(self, message: Message) -> None:
        if message.role == "system":
            raise ValidationError(
                code="INVALID_ROLE",
                message="system messages are derived from configuration and cannot be stored",
            )
        if message.role == "user" and not message.content.strip():
            raise ValidationError(code="EMPTY_MESSAGE", message="user message must not be empty")
        self._messages.append(message)

    def snapshot(self) -> Tuple[Message, ...]:
        """返回当前对话记录的只读快照（按追加顺序）。"""

        return tuple(self._messages)

    def reset(self) -> None:
        self._messages.clear()

    def system_message(self) -> Optional[Message]:
        """根据配置合成 system 消息；指令为空时返回 None。"""

        text = (self.system_instruction or "").strip()
        if not text:
            return None
        return Message(role="system", content=text)

    def __len__(self) -> int:
        return len(self._messages)
