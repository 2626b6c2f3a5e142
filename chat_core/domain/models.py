"""统一的对话与结果数据模型。

本模块定义了会话层与 Provider 适配层之间共享的标准数据结构：

- Message: 一条对话消息（system/user/assistant），创建后不可变。
- ProviderKind: 支持的 Provider 种类（枚举）。
- ProviderConfig: 一次调用所需的 Provider 配置（只读值对象）。
- NormalizedReply: 从各家响应体中提取出的统一回复文本。
- ChatTurn: 会话层一次发送的结果（用户消息 + 回复或错误文本）。

所有 Provider 请求形态（shape）都只依赖这些模型，
并负责在各自的 API JSON 和这些模型之间做转换。
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional

from chat_core.domain.exceptions import ConfigurationError


# LLM 消息角色类型（与 OpenAI 兼容接口的 role 字段对应）
Role = Literal["system", "user", "assistant"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Message:
    """一条对话消息。

    - role: 消息角色。
    - content: 纯文本内容。
    - created_at: 创建时间，仅供 UI 展示，不会发给 Provider。
    """

    role: Role
    content: str
    created_at: datetime = field(default_factory=_utcnow, compare=False)

    def to_payload(self) -> dict:
        return {"role": self.role, "content": self.content}


class ProviderKind(str, Enum):
    """Provider 种类。新增 Provider 时在此添加枚举值，并在 shapes 策略表中登记。"""

    GROQ = "groq"
    OPENROUTER = "openrouter"
    HUGGINGFACE = "huggingface"
    CUSTOM = "custom"

    @classmethod
    def parse(cls, identifier: str) -> "ProviderKind":
        """按名称解析 Provider，不区分大小写；未知名称直接抛出 ConfigurationError。"""

        key = (identifier or "").strip().lower()
        for kind in cls:
            if kind.value == key:
                return kind
        raise ConfigurationError(
            code="UNKNOWN_PROVIDER",
            message=f"Invalid API provider selected: {identifier!r}",
        )


@dataclass(frozen=True)
class ProviderConfig:
    """一次调用使用的 Provider 配置。

    由设置层解析得到，在调用期间只读。
    """

    kind: ProviderKind
    endpoint: str
    model: str
    credential: str = field(repr=False)


@dataclass(frozen=True)
class NormalizedReply:
    """从 Provider 响应中提取出的回复文本。"""

    text: str
    provider: ProviderKind
    model: str


@dataclass
class ChatTurn:
    """一次发送的结果。

    成功时 assistant_message 有值；失败时 error 为展示给用户的错误文本，
    且不会写入对话记录。
    """

    user_message: Message
    assistant_message: Optional[Message] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.assistant_message is not None
