"""测试聊天会话编排。"""

import threading
import time

import pytest

from chat_core.agents.chat_agent import ChatSession
from chat_core.config.settings import Settings
from chat_core.domain.exceptions import ConfigurationError, ProtocolError, TransportError
from chat_core.domain.models import NormalizedReply
from chat_core.ui.render import RecordingSurface


class SettingsStub:
    default_provider = "groq"
    default_model = "llama-3.1-8b-instant"
    api_key = "k"
    endpoint_url = None
    system_prompt = "be terse"


class FakeDispatcher:
    """模拟的 Dispatcher，记录收到的上下文。"""

    def __init__(self, reply="这是测试回复", error=None):
        self.reply = reply
        self.error = error
        self.calls = []
        self.configured = None

    def configure(self, cfg):
        self.configured = cfg

    def dispatch(self, transcript, config, system_instruction=""):
        self.calls.append((tuple(transcript), config, system_instruction))
        if self.error is not None:
            raise self.error
        return NormalizedReply(text=self.reply, provider=config.kind, model=config.model)


def test_send_message_success():
    dispatcher = FakeDispatcher()
    surface = RecordingSurface()
    session = ChatSession(SettingsStub(), dispatcher=dispatcher, surface=surface)

    turn = session.send_message("  帮我分析这段代码 ")

    assert turn.ok
    assert turn.user_message.content == "帮我分析这段代码"
    assert turn.assistant_message.content == "这是测试回复"
    transcript, config, system_instruction = dispatcher.calls[0]
    assert [m.content for m in transcript] == ["帮我分析这段代码"]
    assert system_instruction == "be terse"
    assert config.endpoint == "https://api.groq.com/openai/v1/chat/completions"
    assert [(r, t) for r, t, _ in surface.messages] == [
        ("user", "帮我分析这段代码"),
        ("assistant", "这是测试回复"),
    ]
    assert surface.loading == []
    assert surface.errors == []
    assert [m.role for m in session.store.snapshot()] == ["user", "assistant"]


def test_follow_up_sends_full_transcript():
    dispatcher = FakeDispatcher(reply="ok")
    session = ChatSession(SettingsStub(), dispatcher=dispatcher)
    session.send_message("first")
    session.send_message("second")
    transcript = dispatcher.calls[1][0]
    assert [(m.role, m.content) for m in transcript] == [
        ("user", "first"),
        ("assistant", "ok"),
        ("user", "second"),
    ]


@pytest.mark.parametrize(
    "error",
    [
        ProtocolError(code="EMPTY_RESPONSE", message="No response from API"),
        TransportError(code="API_ERROR", message="bad key", http_status=401),
    ],
)
def test_dispatch_errors_are_rendered_not_stored(error):
    surface = RecordingSurface()
    session = ChatSession(SettingsStub(), dispatcher=FakeDispatcher(error=error), surface=surface)

    turn = session.send_message("hi")

    assert not turn.ok
    assert turn.error == f"Error: {error.message}"
    assert surface.messages[-1][:2] == ("assistant", f"Error: {error.message}")
    assert surface.errors == [f"Error: {error.message}"]
    assert surface.loading == []
    assert [m.role for m in session.store.snapshot()] == ["user"]


def test_unexpected_error_still_removes_loading():
    surface = RecordingSurface()
    session = ChatSession(SettingsStub(), dispatcher=FakeDispatcher(error=RuntimeError("boom")), surface=surface)
    with pytest.raises(RuntimeError):
        session.send_message("hi")
    assert surface.loading == []


def test_missing_key_blocks_dispatch():
    cfg = SettingsStub()
    cfg.api_key = None
    dispatcher = FakeDispatcher()
    session = ChatSession(cfg, dispatcher=dispatcher)
    with pytest.raises(ConfigurationError) as exc:
        session.send_message("hi")
    assert exc.value.code == "MISSING_API_KEY"
    assert dispatcher.calls == []
    assert session.store.snapshot() == ()
    assert session.status() == "Not configured"


def test_empty_message_is_ignored():
    dispatcher = FakeDispatcher()
    session = ChatSession(SettingsStub(), dispatcher=dispatcher)
    assert session.send_message("   ") is None
    assert dispatcher.calls == []


def test_clear_resets_transcript():
    surface = RecordingSurface()
    session = ChatSession(SettingsStub(), dispatcher=FakeDispatcher(), surface=surface)
    session.send_message("hi")
    session.clear()
    assert session.store.snapshot() == ()
    assert surface.notifications[-1] == ("success", "Chat cleared")


def test_status_connected():
    session = ChatSession(SettingsStub(), dispatcher=FakeDispatcher())
    assert session.status() == "Connected (groq)"


def test_sends_are_serialized():
    class SlowDispatcher(FakeDispatcher):
        def __init__(self):
            super().__init__(reply="ok")
            self.active = 0
            self.max_active = 0
            self._guard = threading.Lock()

        def dispatch(self, transcript, config, system_instruction=""):
            with self._guard:
                self.active += 1
                self.max_active = max(self.max_active, self.active)
            time.sleep(0.05)
            with self._guard:
                self.active -= 1
            return super().dispatch(transcript, config, system_instruction)

    dispatcher = SlowDispatcher()
    session = ChatSession(SettingsStub(), dispatcher=dispatcher)
    threads = [threading.Thread(target=session.send_message, args=(f"msg {i}",)) for i in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert dispatcher.max_active == 1
    assert [m.role for m in session.store.snapshot()] == ["user", "assistant", "user", "assistant"]


def test_update_settings_switches_provider_and_model(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    saved = {}
    dispatcher = FakeDispatcher()
    surface = RecordingSurface()
    cfg = Settings(_env_file=None, api_key="k-123", default_provider="groq", default_model="gemma2-9b-it")
    session = ChatSession(cfg, dispatcher=dispatcher, surface=surface, persist=saved.update)

    new_cfg = session.update_settings(persist=True, default_provider="OpenRouter", system_prompt="be brief")

    assert new_cfg.default_provider == "openrouter"
    assert new_cfg.default_model == "meta-llama/llama-3.1-8b-instruct:free"
    assert session.store.system_instruction == "be brief"
    assert dispatcher.configured is new_cfg
    assert saved["DEFAULT_PROVIDER"] == "openrouter"
    assert saved["SYSTEM_PROMPT"] == "be brief"
    assert surface.notifications[-1] == ("success", "Settings saved successfully!")


def test_update_settings_rejects_unknown_provider(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    cfg = Settings(_env_file=None, api_key="k-123")
    session = ChatSession(cfg, dispatcher=FakeDispatcher())
    with pytest.raises(ConfigurationError):
        session.update_settings(default_provider="nope")
    assert session.settings is cfg


def test_switching_provider_drops_previous_endpoint(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    cfg = Settings(
        _env_file=None,
        api_key="k-123",
        default_provider="custom",
        default_model="custom-model",
        endpoint_url="https://my-proxy.test/v1/chat/completions",
    )
    dispatcher = FakeDispatcher()
    session = ChatSession(cfg, dispatcher=dispatcher)

    new_cfg = session.update_settings(default_provider="huggingface")

    assert new_cfg.endpoint_url is None
    session.send_message("hi")
    _, config, _ = dispatcher.calls[0]
    assert config.endpoint == "https://api-inference.huggingface.co/models/meta-llama/Llama-2-7b-chat-hf"


def test_switching_provider_keeps_explicit_endpoint(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    cfg = Settings(_env_file=None, api_key="k-123", endpoint_url="https://old.test/v1")
    session = ChatSession(cfg, dispatcher=FakeDispatcher())

    new_cfg = session.update_settings(
        default_provider="custom", default_model="custom-model", endpoint_url="https://llm.local/v1"
    )
    assert new_cfg.endpoint_url == "https://llm.local/v1"

    # 同一 Provider 只改模型时端点不变
    new_cfg = session.update_settings(default_provider="custom", default_model="other")
    assert new_cfg.endpoint_url == "https://llm.local/v1"
