"""终端聊天入口（console script: chat-core）。

用法：
    chat-core [--provider groq] [--model llama-3.1-8b-instant] [--system-prompt ...] [--endpoint URL]
    chat-core --gui

REPL 内的命令：
    /clear             清空对话
    /status            显示连接状态
    /models            列出当前 Provider 的模型
    /provider <id>     切换 Provider
    /model <id>        切换模型
    /key <credential>  设置 API 密钥
    /system <text>     设置 system 指令
    /save              把当前配置写入 .env
    /quit              退出
"""

from __future__ import annotations

import argparse
import sys
from datetime import datetime
from typing import Callable, Dict, List, Optional, TextIO

from chat_core.agents.chat_agent import ChatSession
from chat_core.config.settings import settings
from chat_core.domain.exceptions import BusinessError
from chat_core.infrastructure.logging.logger import setup_logger
from chat_core.ui.formatting import format_message_terminal, format_time


_LABELS = {"user": "You", "assistant": "AI", "system": "System"}
_LOADING_TEXT = "AI is thinking..."


class ConsoleSurface:
    """把消息打印到终端的 RenderSurface 实现。"""

    def __init__(self, out: Optional[TextIO] = None):
        self._out = out or sys.stdout
        self._seq = 0

    def show_message(self, role: str, text: str, timestamp: datetime, is_error: bool = False) -> None:
        label = _LABELS.get(role, role)
        if is_error:
            label += " [ERROR]"
        self._out.write(f"[{format_time(timestamp)}] {label}:\n{format_message_terminal(text)}\n\n")
        self._out.flush()

    def show_loading(self) -> str:
        self._seq += 1
        self._out.write(_LOADING_TEXT)
        self._out.flush()
        return f"loading-{self._seq}"

    def remove_loading(self, token: str) -> None:
        self._out.write("\r" + " " * len(_LOADING_TEXT) + "\r")
        self._out.flush()

    def notify(self, message: str, level: str = "info") -> None:
        self._out.write(f"[{level.upper()}] {message}\n")
        self._out.flush()


class Repl:
    def __init__(self, session: ChatSession, surface: ConsoleSurface, read: Callable[[str], str] = input):
        self._session = session
        self._surface = surface
        self._read = read
        self._commands: Dict[str, Callable[[str], bool]] = {
            "/clear": self._clear,
            "/status": self._status,
            "/models": self._models,
            "/provider": self._provider,
            "/model": self._model,
            "/key": self._key,
            "/system": self._system,
            "/save": self._save,
            "/quit": lambda _: False,
            "/exit": lambda _: False,
        }

    def run(self) -> int:
        self._surface.notify(f"Status: {self._session.status()}")
        if self._session.status() == "Not configured":
            self._surface.notify("Configure your API key with /key <credential> to start chatting")
        while True:
            try:
                line = self._read("> ")
            except (EOFError, KeyboardInterrupt):
                break
            if not self.handle(line):
                break
        return 0

    def handle(self, line: str) -> bool:
        """处理一行输入，返回 False 表示退出。"""

        text = line.strip()
        if not text:
            return True
        if text.startswith("/"):
            name, _, arg = text.partition(" ")
            command = self._commands.get(name.lower())
            if command is None:
                self._surface.notify(f"Unknown command: {name}", "error")
                return True
            try:
                return command(arg.strip())
            except BusinessError as e:
                self._surface.notify(e.message, "error")
                return True
        try:
            self._session.send_message(text)
        except BusinessError as e:
            self._surface.notify(e.message, "error")
        return True

    def _clear(self, _: str) -> bool:
        self._session.clear()
        return True

    def _status(self, _: str) -> bool:
        cfg = self._session.settings
        self._surface.notify(f"{self._session.status()} model={cfg.default_model}")
        return True

    def _models(self, _: str) -> bool:
        current = self._session.settings.default_model
        for option in self._session.models():
            marker = "*" if option.value == current else " "
            self._surface.notify(f"{marker} {option.value}  ({option.label})")
        return True

    def _provider(self, arg: str) -> bool:
        if not arg:
            self._surface.notify("Usage: /provider <groq|openrouter|huggingface|custom>", "error")
            return True
        cfg = self._session.update_settings(default_provider=arg)
        self._surface.notify(f"Provider: {cfg.default_provider}, model: {cfg.default_model}", "success")
        return True

    def _model(self, arg: str) -> bool:
        if not arg:
            self._surface.notify("Usage: /model <model id>", "error")
            return True
        cfg = self._session.update_settings(default_model=arg)
        self._surface.notify(f"Model: {cfg.default_model}", "success")
        return True

    def _key(self, arg: str) -> bool:
        self._session.update_settings(api_key=arg)
        self._surface.notify(f"Status: {self._session.status()}", "success")
        return True

    def _system(self, arg: str) -> bool:
        self._session.update_settings(system_prompt=arg)
        self._surface.notify("System prompt updated", "success")
        return True

    def _save(self, _: str) -> bool:
        self._session.update_settings(persist=True)
        return True


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="chat-core", description="Chat with an LLM provider from the terminal.")
    parser.add_argument("--provider", help="groq, openrouter, huggingface or custom")
    parser.add_argument("--model", help="provider model id")
    parser.add_argument("--system-prompt", help="system instruction sent before the transcript")
    parser.add_argument("--endpoint", help="override the provider endpoint URL")
    parser.add_argument("--gui", action="store_true", help="open the tkinter chat window")
    return parser


def _overrides(args: argparse.Namespace) -> Dict[str, str]:
    pairs = {
        "default_provider": args.provider,
        "default_model": args.model,
        "system_prompt": args.system_prompt,
        "endpoint_url": args.endpoint,
    }
    return {k: v for k, v in pairs.items() if v is not None}


def main(argv: Optional[List[str]] = None, out: Optional[TextIO] = None, read: Callable[[str], str] = input) -> int:
    args = build_parser().parse_args(argv)
    overrides = _overrides(args)
    cfg = settings.with_changes(**overrides) if overrides else settings
    setup_logger(cfg)

    if args.gui:
        from chat_core.gui.chat_window import launch

        launch(cfg)
        return 0

    surface = ConsoleSurface(out)
    session = ChatSession(cfg, surface=surface)
    return Repl(session, surface, read=read).run()


if __name__ == "__main__":
    sys.exit(main())
