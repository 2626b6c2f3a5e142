"""Provider 端点与模型目录。

- 默认端点：每个 ProviderKind 对应的 HTTP 地址（custom 没有默认端点）。
- 模型目录：设置界面可供选择的模型列表（value + label）。
- resolve_provider_config: 把 Settings 解析为一次调用使用的 ProviderConfig。
"""

from dataclasses import dataclass
from typing import List, Mapping, Optional

from chat_core.domain.exceptions import ConfigurationError
from chat_core.domain.models import ProviderConfig, ProviderKind


@dataclass(frozen=True)
class ModelOption:
    """设置界面中的一个模型选项。"""

    value: str
    label: str


# Hugging Face 的模型 ID 是 URL 的一部分
HUGGINGFACE_ENDPOINT_TEMPLATE = "https://api-inference.huggingface.co/models/{model}"

DEFAULT_ENDPOINTS: Mapping[ProviderKind, str] = {
    ProviderKind.GROQ: "https://api.groq.com/openai/v1/chat/completions",
    ProviderKind.OPENROUTER: "https://openrouter.ai/api/v1/chat/completions",
    ProviderKind.HUGGINGFACE: HUGGINGFACE_ENDPOINT_TEMPLATE,
}

MODEL_CATALOG: Mapping[ProviderKind, List[ModelOption]] = {
    ProviderKind.GROQ: [
        ModelOption("llama-3.1-8b-instant", "Llama 3.1 8B (Fast)"),
        ModelOption("llama-3.1-70b-versatile", "Llama 3.1 70B (Powerful)"),
        ModelOption("llama-3.2-3b-preview", "Llama 3.2 3B"),
        ModelOption("mixtral-8x7b-32768", "Mixtral 8x7B"),
        ModelOption("gemma2-9b-it", "Gemma 2 9B"),
    ],
    ProviderKind.OPENROUTER: [
        ModelOption("meta-llama/llama-3.1-8b-instruct:free", "Llama 3.1 8B (Free)"),
        ModelOption("google/gemma-2-9b-it:free", "Gemma 2 9B (Free)"),
        ModelOption("mistralai/mistral-7b-instruct:free", "Mistral 7B (Free)"),
    ],
    ProviderKind.HUGGINGFACE: [
        ModelOption("meta-llama/Llama-2-7b-chat-hf", "Llama 2 7B Chat"),
        ModelOption("mistralai/Mistral-7B-Instruct-v0.1", "Mistral 7B Instruct"),
        ModelOption("google/flan-t5-large", "FLAN-T5 Large"),
    ],
    ProviderKind.CUSTOM: [
        ModelOption("custom-model", "Custom Model"),
    ],
}


def models_for(kind: ProviderKind) -> List[ModelOption]:
    return list(MODEL_CATALOG.get(kind, []))


def default_model_for(kind: ProviderKind) -> str:
    return MODEL_CATALOG[kind][0].value


def default_endpoint(kind: ProviderKind, model: str) -> Optional[str]:
    template = DEFAULT_ENDPOINTS.get(kind)
    if template is None:
        return None
    return template.format(model=model)


def resolve_provider_config(settings) -> ProviderConfig:
    """根据配置生成 ProviderConfig。

    - Provider 名未知：ConfigurationError(UNKNOWN_PROVIDER)。
    - 缺少 api_key：ConfigurationError(MISSING_API_KEY)。
    - api_key 含非 ASCII 字符：ConfigurationError(INVALID_API_KEY)。
    - 无可用端点（custom 且未配置 endpoint_url）：ConfigurationError(MISSING_ENDPOINT)。
    """

    kind = ProviderKind.parse(settings.default_provider)
    credential = (getattr(settings, "api_key", None) or "").strip()
    if not credential:
        raise ConfigurationError(
            code="MISSING_API_KEY",
            message="Please configure your API key in settings",
            provider=kind.value,
        )
    if not credential.isascii():
        raise ConfigurationError(
            code="INVALID_API_KEY",
            message="API key contains non-ASCII characters",
            provider=kind.value,
        )
    model = (settings.default_model or "").strip() or default_model_for(kind)
    endpoint = getattr(settings, "endpoint_url", None) or default_endpoint(kind, model)
    if not endpoint:
        raise ConfigurationError(
            code="MISSING_ENDPOINT",
            message=f"No endpoint configured for provider {kind.value!r}",
            provider=kind.value,
        )
    return ProviderConfig(kind=kind, endpoint=endpoint, model=model, credential=credential)
