"""渲染层协议。

会话层只通过 RenderSurface 与界面交互：显示一条消息、显示/移除加载占位、
弹出一条提示。控制台与 tkinter 窗口各自实现该协议。
"""

from datetime import datetime
from typing import List, Protocol, Tuple


class RenderSurface(Protocol):
    def show_message(self, role: str, text: str, timestamp: datetime, is_error: bool = False) -> None:
        """显示一条消息；is_error 为 True 时按错误样式展示（错误不会写入对话记录）。"""

        ...

    def show_loading(self) -> str:
        """显示加载占位，返回用于移除的标识。"""

        ...

    def remove_loading(self, token: str) -> None:
        ...

    def notify(self, message: str, level: str = "info") -> None:
        ...


class RecordingSurface:
    """把渲染调用记录在内存里，不做任何展示。

    用于无界面场景（脚本调用）与测试。
    """

    def __init__(self) -> None:
        self.messages: List[Tuple[str, str, datetime]] = []
        self.errors: List[str] = []
        self.notifications: List[Tuple[str, str]] = []
        self.loading: List[str] = []
        self._seq = 0

    def show_message(self, role: str, text: str, timestamp: datetime, is_error: bool = False) -> None:
        self.messages.append((role, text, timestamp))
        if is_error:
            self.errors.append(text)

    def show_loading(self) -> str:
        self._seq += 1
        token = f"loading-{self._seq}"
        self.loading.append(token)
        return token

    def remove_loading(self, token: str) -> None:
        if token in self.loading:
            self.loading.remove(token)

    def notify(self, message: str, level: str = "info") -> None:
        self.notifications.append((level, message))
