"""统一业务异常模型。

所有跨模块抛出的业务级错误都应该继承自 BusinessError，
便于在会话层或 UI 层做统一捕获与用户提示。

分类：
- ConfigurationError: Provider 未知、缺少密钥/端点，调用方应阻止发送并提示重新配置。
- ValidationError: 输入校验失败（空消息、非法角色等）。
- TransportError: 网络失败或非 2xx 响应。
- ProtocolError: HTTP 成功但响应体缺少预期字段。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "MISSING_API_KEY"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 trace_id、provider 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class ConfigurationError(BusinessError):
    """配置错误：未知 Provider、缺少 API 密钥或端点。"""


class ValidationError(BusinessError):
    """参数校验失败。"""


class TransportError(BusinessError):
    """网络层错误或第三方 API 返回非 2xx 状态。"""


class RateLimitError(TransportError):
    """Provider 限流（429），不做自动重试。"""


class ProtocolError(BusinessError):
    """HTTP 调用成功，但响应体中没有可用的回复内容。"""
