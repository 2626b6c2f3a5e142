"""Chat Core 顶层包。

该包把用户输入转发给第三方 LLM 补全接口并展示回复，
包括配置加载、领域模型、Provider 请求形态与调度、
会话编排以及终端/tkinter 两种界面。
"""

from chat_core.agents.chat_agent import ChatSession
from chat_core.domain.conversation import ConversationStore
from chat_core.domain.models import Message, ProviderConfig, ProviderKind
from chat_core.providers.dispatcher import ProviderDispatcher

__all__ = ["ChatSession", "ConversationStore", "Message", "ProviderConfig", "ProviderKind", "ProviderDispatcher"]
