"""聊天会话编排。

ChatSession 由入口程序显式创建并持有，负责一次完整的发送流程：

1. 校验输入并解析 Provider 配置（配置错误直接抛给调用方）。
2. 写入用户消息并渲染，显示加载占位。
3. 调用 ProviderDispatcher；成功则写入并渲染助手回复。
4. 失败时把 "Error: ..." 作为助手气泡展示（不写入对话记录）。
5. 无论成功失败都移除加载占位。

同一会话的发送由锁串行化，回复按请求顺序写入对话记录。
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional

from chat_core.config.env_utils import write_env_file
from chat_core.config.settings import settings as default_settings
from chat_core.domain.conversation import ConversationStore
from chat_core.domain.exceptions import BusinessError
from chat_core.domain.models import ChatTurn, Message, ProviderKind
from chat_core.infrastructure.logging.logger import logger, setup_logger
from chat_core.providers import create_dispatcher
from chat_core.providers.dispatcher import ProviderDispatcher
from chat_core.providers.registry import ModelOption, default_model_for, models_for, resolve_provider_config
from chat_core.ui.render import RecordingSurface, RenderSurface


class ChatSession:
    def __init__(
        self,
        cfg=default_settings,
        store: Optional[ConversationStore] = None,
        dispatcher: Optional[ProviderDispatcher] = None,
        surface: Optional[RenderSurface] = None,
        persist: Callable[[Mapping[str, str]], Any] = write_env_file,
    ):
        """初始化会话。

        Args:
            cfg: 配置对象（Settings 或具有相同字段的对象）
            store: 对话记录存储（可选，默认新建）
            dispatcher: Provider 调度器（可选，默认按 cfg 新建）
            surface: 渲染层（可选，默认只在内存中记录）
            persist: 保存配置时调用的持久化函数，默认写入 .env
        """
        self._settings = cfg
        self._store = store if store is not None else ConversationStore(system_instruction=cfg.system_prompt)
        self._dispatcher = dispatcher if dispatcher is not None else create_dispatcher(cfg)
        self._surface = surface if surface is not None else RecordingSurface()
        self._persist = persist
        self._lock = threading.Lock()

    @property
    def settings(self):
        return self._settings

    @property
    def store(self) -> ConversationStore:
        return self._store

    def send_message(self, text: str) -> Optional[ChatTurn]:
        """发送一条用户消息。

        Returns:
            ChatTurn；输入为空时返回 None 且不产生任何副作用。

        Raises:
            ConfigurationError: Provider 未知、缺少密钥或端点，此时不写入任何消息。
        """
        text = (text or "").strip()
        if not text:
            return None

        with self._lock:
            config = resolve_provider_config(self._settings)
            user_msg = Message(role="user", content=text)
            self._store.append(user_msg)
            self._surface.show_message(user_msg.role, user_msg.content, user_msg.created_at)
            self._log(logging.INFO, "User message appended", provider=config.kind.value, chars=len(text))

            token = self._surface.show_loading()
            try:
                reply = self._dispatcher.dispatch(
                    self._store.snapshot(),
                    config,
                    self._store.system_instruction,
                )
            except BusinessError as e:
                self._surface.remove_loading(token)
                error_text = f"Error: {e.message}"
                self._surface.show_message("assistant", error_text, datetime.now(timezone.utc), is_error=True)
                self._log(
                    logging.ERROR,
                    "API Error",
                    provider=config.kind.value,
                    code=e.code,
                    http_status=e.http_status,
                    error=e.message,
                )
                return ChatTurn(user_message=user_msg, error=error_text)
            except Exception:
                self._surface.remove_loading(token)
                raise

            self._surface.remove_loading(token)
            assistant_msg = Message(role="assistant", content=reply.text)
            self._store.append(assistant_msg)
            self._surface.show_message(assistant_msg.role, assistant_msg.content, assistant_msg.created_at)
            self._log(logging.INFO, "Assistant reply appended", provider=reply.provider.value, chars=len(reply.text))
            return ChatTurn(user_message=user_msg, assistant_message=assistant_msg)

    def clear(self) -> None:
        with self._lock:
            self._store.reset()
        self._surface.notify("Chat cleared", "success")

    def status(self) -> str:
        if getattr(self._settings, "api_key", None):
            return f"Connected ({self._settings.default_provider})"
        return "Not configured"

    def models(self) -> List[ModelOption]:
        """当前 Provider 可选的模型列表。"""

        return models_for(ProviderKind.parse(self._settings.default_provider))

    def update_settings(self, persist: bool = False, **changes: Any):
        """修改配置并立即生效。

        切换 Provider 而未指定模型时，若原模型不在新 Provider 的目录中，
        自动改用新 Provider 的第一个模型；未同时指定 endpoint_url 时清空端点，
        改用新 Provider 的默认端点。

        Raises:
            ConfigurationError: 新的 Provider 名未知。
        """
        if "default_provider" in changes:
            kind = ProviderKind.parse(changes["default_provider"])
            changes["default_provider"] = kind.value
            if kind.value != self._settings.default_provider and "endpoint_url" not in changes:
                # 旧端点属于原 Provider，不能带到新 Provider 上
                changes["endpoint_url"] = None
            if "default_model" not in changes:
                current = self._settings.default_model
                if current not in {m.value for m in models_for(kind)}:
                    changes["default_model"] = default_model_for(kind)
        new_settings = self._settings.with_changes(**changes)
        with self._lock:
            self._settings = new_settings
            self._store.system_instruction = new_settings.system_prompt
            self._dispatcher.configure(new_settings)
        if any(key.startswith("log_") for key in changes):
            setup_logger(new_settings)
        if persist:
            self._persist(new_settings.to_env())
            self._surface.notify("Settings saved successfully!", "success")
        self._log(
            logging.INFO,
            "Settings updated",
            provider=new_settings.default_provider,
            model=new_settings.default_model,
            persisted=persist,
        )
        return new_settings

    @staticmethod
    def _log(level: int, message: str, **fields: Any) -> None:
        payload: Dict[str, Any] = dict(fields)
        logger.log(level, message, extra={"extra": payload})
