"""配置管理模块。

支持从环境变量、.env 以及 config.yaml 加载配置。
优先级：显式参数 > 环境变量 > .env > config.yaml。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful AI assistant. Provide clear, concise, and accurate responses."
)


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("CHAT_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
    ])

    seen: set[Path] = set()
    for path in candidates:
        if not path or path in seen:
            continue
        seen.add(path)
        try:
            if path.exists():
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
                if isinstance(data, dict):
                    return data
                warnings.warn(f"Config file {path} is not a mapping, ignored")
        except (OSError, yaml.YAMLError) as exc:
            warnings.warn(f"Failed to read config file {path}: {exc}")
    return {}


class Settings(BaseSettings):
    """聊天客户端配置。"""

    # ---- Provider 相关配置 ----
    default_provider: str = Field(
        default="groq",
        description="Provider 名称：groq、openrouter、huggingface、custom",
    )
    default_model: str = Field(
        default="llama-3.1-8b-instant",
        description="Provider 侧的模型 ID",
    )
    api_key: Optional[str] = Field(default=None, description="Bearer 凭证")
    endpoint_url: Optional[str] = Field(
        default=None,
        description="覆盖 Provider 默认端点；custom Provider 必填",
    )
    system_prompt: str = Field(default=DEFAULT_SYSTEM_PROMPT, description="system 指令")

    # ---- HTTP ----
    http_timeout: float = Field(default=30.0, ge=1.0, description="HTTP 超时时间（秒）")
    http_referer: str = Field(
        default="http://localhost",
        description="OpenRouter 要求的 HTTP-Referer 头",
    )
    app_title: str = Field(
        default="AI Chat Educational Demo",
        description="OpenRouter 要求的 X-Title 头",
    )

    # ---- 日志 ----
    log_dir: str = Field(default="logs", description="日志目录")
    log_level: str = Field(default="INFO", description="日志级别")
    log_redact_content: bool = Field(default=False, description="是否截断日志中的消息内容")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("default_provider", "default_model", "system_prompt", "http_referer", "app_title")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()

    @field_validator("api_key", "endpoint_url")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._config_source,
            file_secret_settings,
        )

    def with_changes(self, **changes: Any) -> "Settings":
        """返回应用了修改后的新配置（重新走一遍校验）。"""

        data = self.model_dump()
        data.update(changes)
        return type(self)(**data)

    def to_env(self) -> Dict[str, str]:
        """可持久化到 .env 的字段（键为大写环境变量名）。"""

        return {
            "DEFAULT_PROVIDER": self.default_provider,
            "DEFAULT_MODEL": self.default_model,
            "API_KEY": self.api_key or "",
            "ENDPOINT_URL": self.endpoint_url or "",
            "SYSTEM_PROMPT": self.system_prompt,
        }


settings = Settings()
