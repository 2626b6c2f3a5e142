"""界面相关：渲染协议与消息格式化。"""

from chat_core.ui.formatting import format_message_html, format_message_terminal
from chat_core.ui.render import RecordingSurface, RenderSurface

__all__ = ["RecordingSurface", "RenderSurface", "format_message_html", "format_message_terminal"]
