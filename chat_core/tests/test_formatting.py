from datetime import datetime, timezone

from chat_core.ui.formatting import format_message_html, format_message_terminal, format_time


def test_html_escapes_and_formats_code():
    text = "Use `x < y`\n```python\nprint('<b>')\n```"
    out = format_message_html(text)
    assert "<code>x &lt; y</code>" in out
    assert "<pre><code>print('&lt;b&gt;')</code></pre>" in out
    assert "<br>" in out


def test_terminal_indents_code_blocks():
    text = "Run:\n```bash\nls -la\n```\nthen `cd`"
    out = format_message_terminal(text)
    assert "```" not in out
    assert "    ls -la" in out
    assert out.endswith("then cd")


def test_format_time():
    ts = datetime(2024, 1, 1, 12, 30, tzinfo=timezone.utc)
    assert len(format_time(ts)) == 5
