"""消息文本格式化：代码块、行内代码与换行。"""

import html
import re
import textwrap
from datetime import datetime

_CODE_BLOCK = re.compile(r"```(\w+)?\n([\s\S]*?)```")
_INLINE_CODE = re.compile(r"`([^`]+)`")


def format_message_html(content: str) -> str:
    """转成可直接放进消息气泡的 HTML 片段。

    先转义 &、<、>，再处理 ``` 代码块、`行内代码`，最后把换行转成 <br>。
    """

    content = html.escape(content, quote=False)
    content = _CODE_BLOCK.sub(lambda m: f"<pre><code>{m.group(2).strip()}</code></pre>", content)
    content = _INLINE_CODE.sub(r"<code>\1</code>", content)
    return content.replace("\n", "<br>")


def format_message_terminal(content: str, indent: str = "    ") -> str:
    """终端展示：去掉 ``` 围栏，代码块整体缩进；行内代码去掉反引号。"""

    def _block(m: re.Match) -> str:
        code = m.group(2).strip("\n")
        return textwrap.indent(code, indent) + "\n"

    content = _CODE_BLOCK.sub(_block, content)
    return _INLINE_CODE.sub(r"\1", content).rstrip("\n")


def format_time(ts: datetime) -> str:
    """HH:MM，本地时区。"""

    return ts.astimezone().strftime("%H:%M")
