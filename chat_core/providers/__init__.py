"""LLM Provider 集成层。

该包下的模块负责：
- 定义请求形态协议 (base)。
- 维护 Provider 端点与模型目录 (registry)。
- 提供各请求形态与策略表 (shapes)。
- 执行一次完整调用 (dispatcher)。
"""

from typing import Optional

from chat_core.config.settings import settings
from chat_core.domain.models import ProviderKind
from chat_core.providers.dispatcher import DispatchState, ProviderDispatcher
from chat_core.providers.registry import resolve_provider_config


def create_dispatcher(cfg=None) -> ProviderDispatcher:
    """创建 ProviderDispatcher，默认使用全局配置。"""

    return ProviderDispatcher(cfg or settings)


__all__ = [
    "DispatchState",
    "ProviderDispatcher",
    "ProviderKind",
    "create_dispatcher",
    "resolve_provider_config",
]
