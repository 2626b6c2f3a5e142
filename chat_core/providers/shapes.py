"""各 Provider 的请求形态与策略表。

两种 wire 结构：

1. chat-completions（OpenAI 兼容，Groq / OpenRouter / custom）：
   {model, messages, temperature, max_tokens}，回复在 choices[0].message.content。
2. prompt-concatenation（Hugging Face Inference API）：
   把消息拍平成 "<role>: <content>" 多行文本，
   {inputs, parameters: {max_new_tokens, temperature}}，回复在 [0].generated_text。

STRATEGIES 把 ProviderKind 映射到 {shape, 额外请求头}，
新增 Provider 只需要加一个枚举值和一条表项。
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Sequence

from chat_core.domain.exceptions import ConfigurationError, ProtocolError
from chat_core.domain.models import Message, ProviderConfig, ProviderKind
from chat_core.providers.base import RequestShape


DEFAULT_TEMPERATURE = 0.7
CHAT_MAX_TOKENS = 1024
PROMPT_MAX_NEW_TOKENS = 512


class ChatCompletionsShape:
    name = "chat-completions"

    def build_request(self, messages: Sequence[Message], config: ProviderConfig) -> dict:
        return {
            "model": config.model,
            "messages": [m.to_payload() for m in messages],
            "temperature": DEFAULT_TEMPERATURE,
            "max_tokens": CHAT_MAX_TOKENS,
        }

    def parse_response(self, data: Any) -> str:
        if not isinstance(data, dict):
            raise ProtocolError(code="INVALID_RESPONSE", message="Unexpected response format from API")
        choices = data.get("choices") or []
        first = choices[0] if isinstance(choices, list) and choices else None
        message = first.get("message") if isinstance(first, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str) or not content:
            raise ProtocolError(code="EMPTY_RESPONSE", message="No response from API")
        return content


class PromptConcatenationShape:
    name = "prompt-concatenation"

    @staticmethod
    def flatten(messages: Sequence[Message]) -> str:
        return "\n".join(f"{m.role}: {m.content}" for m in messages)

    def build_request(self, messages: Sequence[Message], config: ProviderConfig) -> dict:
        return {
            "inputs": self.flatten(messages),
            "parameters": {
                "max_new_tokens": PROMPT_MAX_NEW_TOKENS,
                "temperature": DEFAULT_TEMPERATURE,
            },
        }

    def parse_response(self, data: Any) -> str:
        if not isinstance(data, list):
            raise ProtocolError(code="INVALID_RESPONSE", message="Unexpected response format from API")
        first = data[0] if data else None
        text = first.get("generated_text") if isinstance(first, dict) else None
        if not isinstance(text, str) or not text:
            raise ProtocolError(code="EMPTY_RESPONSE", message="No response from API")
        return text


def _no_headers(settings) -> Dict[str, str]:
    return {}


def _openrouter_headers(settings) -> Dict[str, str]:
    # OpenRouter 要求的来源与标题头，内容固定，不依赖消息
    return {
        "HTTP-Referer": getattr(settings, "http_referer", None) or "http://localhost",
        "X-Title": getattr(settings, "app_title", None) or "AI Chat Educational Demo",
    }


@dataclass(frozen=True)
class ProviderStrategy:
    shape: RequestShape
    extra_headers: Callable[[Any], Dict[str, str]] = field(default=_no_headers)


_CHAT = ChatCompletionsShape()
_PROMPT = PromptConcatenationShape()

STRATEGIES: Mapping[ProviderKind, ProviderStrategy] = {
    ProviderKind.GROQ: ProviderStrategy(shape=_CHAT),
    ProviderKind.OPENROUTER: ProviderStrategy(shape=_CHAT, extra_headers=_openrouter_headers),
    ProviderKind.HUGGINGFACE: ProviderStrategy(shape=_PROMPT),
    ProviderKind.CUSTOM: ProviderStrategy(shape=_CHAT),
}


def get_strategy(kind: ProviderKind) -> ProviderStrategy:
    """获取 Provider 的策略；表中没有的 Provider 直接报配置错误，不回退到默认形态。"""

    strategy = STRATEGIES.get(kind)
    if strategy is None:
        raise ConfigurationError(
            code="UNKNOWN_PROVIDER",
            message=f"No request shape registered for provider {kind!r}",
        )
    return strategy
