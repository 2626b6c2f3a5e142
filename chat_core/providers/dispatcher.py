"""Provider 调度器。

本模块负责一次完整的 dispatch：

1. Building：按 ProviderKind 从策略表选出请求形态，构造请求体。
2. InFlight：发出且只发出一次 HTTP POST。
3. Succeeded：从响应体中提取回复文本，得到 NormalizedReply。
4. Failed：网络错误 / 非 2xx / 响应缺字段，抛出对应的业务异常。

不做重试、缓存或去重；失败后由调用方决定是否重新发送。
"""

import logging
import time
from enum import Enum
from typing import Any, Dict, Optional, Sequence
from uuid import uuid4

import httpx

from chat_core.config.settings import settings as default_settings
from chat_core.domain.exceptions import (
    ConfigurationError,
    ProtocolError,
    RateLimitError,
    TransportError,
)
from chat_core.domain.models import Message, NormalizedReply, ProviderConfig, ProviderKind
from chat_core.infrastructure.logging.logger import logger
from chat_core.providers.shapes import get_strategy


class DispatchState(str, Enum):
    IDLE = "idle"
    BUILDING = "building"
    IN_FLIGHT = "in_flight"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ProviderDispatcher:
    """把统一的对话上下文翻译成具体 Provider 请求并归一化回复。

    - dispatch(): 对外唯一入口，返回 NormalizedReply。
    - last_state: 最近一次调用停留的状态（SUCCEEDED / FAILED 为终态）。
    """

    def __init__(self, cfg=default_settings):
        # Settings 里包含超时、OpenRouter 头等配置
        self._settings = cfg
        self.last_state = DispatchState.IDLE

    def configure(self, cfg) -> None:
        """切换到新的配置（设置保存后调用）。"""

        self._settings = cfg

    def dispatch(
        self,
        transcript: Sequence[Message],
        config: ProviderConfig,
        system_instruction: str = "",
    ) -> NormalizedReply:
        trace_id = f"dp-{uuid4().hex}"
        log_ctx: Dict[str, Any] = {"trace_id": trace_id}
        self.last_state = DispatchState.IDLE
        try:
            return self._dispatch(transcript, config, system_instruction, log_ctx)
        except Exception as e:
            self._transition(DispatchState.FAILED, log_ctx, level=logging.WARNING, error=str(e))
            raise

    def _dispatch(
        self,
        transcript: Sequence[Message],
        config: ProviderConfig,
        system_instruction: str,
        log_ctx: Dict[str, Any],
    ) -> NormalizedReply:
        # ---- Building ----
        self._transition(DispatchState.BUILDING, log_ctx)
        kind = config.kind if isinstance(config.kind, ProviderKind) else ProviderKind.parse(config.kind)
        log_ctx.update({"provider": kind.value, "model": config.model})
        strategy = get_strategy(kind)
        if not config.credential:
            raise ConfigurationError(
                code="MISSING_API_KEY",
                message="Please configure your API key in settings",
                provider=kind.value,
            )
        if not config.credential.isascii():
            # HTTP 头只能是 ASCII，粘贴密钥时混入的全角引号等字符会在这里被拦下
            raise ConfigurationError(
                code="INVALID_API_KEY",
                message="API key contains non-ASCII characters",
                provider=kind.value,
            )
        messages = self._with_system(transcript, system_instruction)
        payload = strategy.shape.build_request(messages, config)
        headers = {
            "Authorization": f"Bearer {config.credential}",
            "Content-Type": "application/json",
        }
        headers.update(strategy.extra_headers(self._settings))

        # ---- InFlight ----
        self._transition(DispatchState.IN_FLIGHT, log_ctx, shape=strategy.shape.name, messages=len(messages))
        start = time.time()
        try:
            with httpx.Client(timeout=self._settings.http_timeout, trust_env=False) as client:
                resp = client.post(config.endpoint, json=payload, headers=headers)
        except httpx.RequestError as e:
            # 网络错误：DNS 失败、连接超时等
            raise TransportError(code="NETWORK_ERROR", message=str(e) or type(e).__name__, provider=kind.value)
        except (httpx.InvalidURL, ValueError) as e:
            # 请求无法构造：非法 URL、头部编码失败等
            raise TransportError(code="INVALID_REQUEST", message=str(e) or type(e).__name__, provider=kind.value)
        latency_ms = int((time.time() - start) * 1000)

        if not 200 <= resp.status_code < 300:
            message = self._error_message(resp)
            err_cls = RateLimitError if resp.status_code == 429 else TransportError
            raise err_cls(
                code="RATE_LIMIT" if resp.status_code == 429 else "API_ERROR",
                message=message,
                http_status=resp.status_code,
                provider=kind.value,
            )

        try:
            data = resp.json()
        except ValueError:
            raise ProtocolError(code="INVALID_RESPONSE", message="API returned a non-JSON body", provider=kind.value)
        text = strategy.shape.parse_response(data)

        # ---- Succeeded ----
        self._transition(DispatchState.SUCCEEDED, log_ctx, latency_ms=latency_ms, reply_chars=len(text))
        return NormalizedReply(text=text, provider=kind, model=config.model)

    @staticmethod
    def _with_system(transcript: Sequence[Message], system_instruction: str) -> list:
        """system 消息总在最前；指令为空时不发送。"""

        messages = list(transcript)
        instruction = (system_instruction or "").strip()
        if instruction:
            messages.insert(0, Message(role="system", content=instruction))
        return messages

    @staticmethod
    def _error_message(resp) -> str:
        """尽量从错误响应体中取出可读信息，否则用状态码拼一条。"""

        data: Optional[Any]
        try:
            data = resp.json()
        except ValueError:
            data = None
        if isinstance(data, dict):
            error = data.get("error")
            if isinstance(error, dict) and error.get("message"):
                return str(error["message"])
            # Hugging Face 的错误格式：{"error": "..."}
            if isinstance(error, str) and error:
                return error
        return f"API request failed: {resp.status_code}"

    def _transition(self, state: DispatchState, log_ctx: Dict[str, Any], level: int = logging.DEBUG, **fields: Any) -> None:
        self.last_state = state
        payload = dict(log_ctx)
        payload["state"] = state.value
        payload.update(fields)
        if state == DispatchState.SUCCEEDED:
            level = logging.INFO
        logger.log(level, f"Dispatch {state.value}", extra={"extra": payload})
