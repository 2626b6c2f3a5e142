"""请求形态（shape）抽象接口。

Dispatcher 不直接关心各家 API 的 JSON 结构，而是依赖此协议：

- 每种 wire 结构实现一个 RequestShape（chat-completions、prompt-concatenation）。
- 负责：把 system 消息 + 对话记录转成请求体，并把响应 JSON 解析成回复文本。

这样新增 Provider 时只需在 shapes 策略表中登记，不需要改 Dispatcher。
"""

from typing import Any, Protocol, Sequence

from chat_core.domain.models import Message, ProviderConfig


class RequestShape(Protocol):
    """请求形态协议。

    - name: 形态名称，用于日志。
    - build_request(messages, config): 生成 JSON 请求体。
    - parse_response(data): 从成功响应中提取回复文本，缺失时抛出 ProtocolError。
    """

    name: str

    def build_request(self, messages: Sequence[Message], config: ProviderConfig) -> dict:
        ...

    def parse_response(self, data: Any) -> str:
        ...
