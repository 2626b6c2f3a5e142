import threading
import tkinter as tk
from datetime import datetime
from tkinter import messagebox, scrolledtext, ttk

from chat_core.agents.chat_agent import ChatSession
from chat_core.domain.exceptions import BusinessError, ConfigurationError
from chat_core.domain.models import ProviderKind
from chat_core.infrastructure.logging.logger import logger, setup_logger
from chat_core.providers.registry import models_for
from chat_core.ui.formatting import format_message_terminal, format_time

_LABELS = {"user": "用户", "assistant": "助手", "system": "系统"}


class TkSurface:
    """RenderSurface 的 tkinter 实现。

    会话在工作线程里调用这些方法，所有控件操作都通过 root.after 切回主线程。
    """

    def __init__(self, root, chat, status):
        self.root = root
        self.chat = chat
        self.status = status
        self._seq = 0

    def show_message(self, role, text, timestamp: datetime, is_error: bool = False):
        label = _LABELS.get(role, role)
        tag = "error" if is_error else role

        def _insert():
            self.chat.insert(tk.END, f"{label}  {format_time(timestamp)}\n", "meta")
            self.chat.insert(tk.END, format_message_terminal(text) + "\n\n", tag)
            self.chat.see(tk.END)

        self.root.after(0, _insert)

    def show_loading(self):
        self._seq += 1
        token = f"loading-{self._seq}"

        def _insert():
            self.chat.insert(tk.END, "助手正在输入...\n", ("system", token))
            self.chat.see(tk.END)

        self.root.after(0, _insert)
        return token

    def remove_loading(self, token):
        def _remove():
            ranges = self.chat.tag_ranges(token)
            if ranges:
                self.chat.delete(ranges[0], ranges[-1])

        self.root.after(0, _remove)

    def notify(self, message, level="info"):
        self.root.after(0, lambda: self.status.config(text=f"[{level}] {message}"))


class App:
    def __init__(self, root, cfg):
        self.root = root
        self.root.title(cfg.app_title)
        self.sending = False
        top = tk.Frame(root)
        top.pack(fill=tk.X)
        self.status = tk.Label(top, text="准备就绪", anchor=tk.W)
        self.status.pack(side=tk.LEFT, fill=tk.X, expand=True)
        tk.Button(top, text="设置", command=self.open_settings).pack(side=tk.RIGHT)
        tk.Button(top, text="清空", command=self.on_clear).pack(side=tk.RIGHT)
        self.chat = scrolledtext.ScrolledText(root, width=80, height=24, wrap=tk.WORD)
        self.chat.pack(fill=tk.BOTH, expand=True)
        self.chat.tag_config("user", foreground="#1a73e8")
        self.chat.tag_config("assistant", foreground="#34a853")
        self.chat.tag_config("system", foreground="#5f6368")
        self.chat.tag_config("meta", foreground="#9aa0a6")
        self.chat.tag_config("error", foreground="#d93025")
        bottom = tk.Frame(root)
        bottom.pack(fill=tk.X)
        self.entry = tk.Entry(bottom)
        self.entry.pack(side=tk.LEFT, fill=tk.X, expand=True)
        self.entry.bind("<Return>", self.on_send_event)
        self.send_btn = tk.Button(bottom, text="发送", command=self.on_send)
        self.send_btn.pack(side=tk.LEFT)
        self.surface = TkSurface(root, self.chat, self.status)
        self.session = ChatSession(cfg, surface=self.surface)
        self.update_status()

    def update_status(self):
        self.status.config(text=self.session.status())

    def on_send(self):
        if self.sending:
            return
        text = self.entry.get().strip()
        if not text:
            return
        self.sending = True
        self.send_btn.config(state=tk.DISABLED)
        self.entry.delete(0, tk.END)

        def worker():
            err = None
            try:
                self.session.send_message(text)
            except BusinessError as e:
                err = e
            except Exception as e:
                logger.exception("GUI send failed", extra={"extra": {"error": str(e)}})
                err = BusinessError(code="INTERNAL_ERROR", message=str(e) or type(e).__name__, http_status=500)
            finally:
                # 不论成败都要恢复发送按钮
                self.root.after(0, lambda: self.on_done(err))

        threading.Thread(target=worker, daemon=True).start()

    def on_send_event(self, event):
        self.on_send()
        return "break"

    def on_done(self, err):
        self.sending = False
        self.send_btn.config(state=tk.NORMAL)
        self.entry.focus_set()
        if isinstance(err, ConfigurationError):
            messagebox.showerror("配置错误", err.message)
            self.open_settings()
        elif err is not None:
            messagebox.showerror("发送失败", err.message)

    def on_clear(self):
        if len(self.session.store) and not messagebox.askyesno("清空", "确定要清空聊天记录吗？"):
            return
        self.session.clear()
        self.chat.delete(1.0, tk.END)

    def open_settings(self):
        SettingsDialog(self)


class SettingsDialog:
    def __init__(self, app: App):
        self.app = app
        cfg = app.session.settings
        self.top = tk.Toplevel(app.root)
        self.top.title("设置")
        self.api_key = self._row("API Key", tk.Entry(self.top, show="*"))
        self.api_key.insert(0, cfg.api_key or "")
        self.provider = self._row(
            "Provider",
            ttk.Combobox(self.top, values=[k.value for k in ProviderKind], state="readonly"),
        )
        self.provider.set(cfg.default_provider)
        self.provider.bind("<<ComboboxSelected>>", lambda _e: self.on_provider_change())
        self.model = self._row("Model", ttk.Combobox(self.top))
        self.endpoint = self._row("Endpoint", tk.Entry(self.top))
        self.endpoint.insert(0, cfg.endpoint_url or "")
        tk.Label(self.top, text="System Prompt").pack(anchor=tk.W)
        self.system_prompt = tk.Text(self.top, width=60, height=5)
        self.system_prompt.pack(fill=tk.BOTH, expand=True)
        self.system_prompt.insert(1.0, cfg.system_prompt)
        tk.Button(self.top, text="保存", command=self.on_save).pack(anchor=tk.E)
        self.update_model_options(keep=cfg.default_model)

    def _row(self, label, widget):
        fr = tk.Frame(self.top)
        fr.pack(fill=tk.X)
        tk.Label(fr, text=label, width=12, anchor=tk.W).pack(side=tk.LEFT)
        widget.pack(in_=fr, side=tk.LEFT, fill=tk.X, expand=True)
        return widget

    def on_provider_change(self):
        # 端点属于原 Provider，切换后清空，留空即使用新 Provider 的默认端点
        self.endpoint.delete(0, tk.END)
        self.update_model_options()

    def update_model_options(self, keep=None):
        values = [m.value for m in models_for(ProviderKind.parse(self.provider.get()))]
        self.model.config(values=values)
        self.model.set(keep if keep else (values[0] if values else ""))

    def on_save(self):
        try:
            self.app.session.update_settings(
                persist=True,
                api_key=self.api_key.get(),
                default_provider=self.provider.get(),
                default_model=self.model.get(),
                endpoint_url=self.endpoint.get(),
                system_prompt=self.system_prompt.get(1.0, tk.END),
            )
        except BusinessError as e:
            messagebox.showerror("配置错误", e.message)
            return
        self.app.update_status()
        self.top.destroy()


def launch(cfg):
    setup_logger(cfg)
    root = tk.Tk()
    App(root, cfg)
    root.mainloop()
