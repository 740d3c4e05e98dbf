"""统一业务异常模型。

所有跨模块抛出的业务级错误都应该继承自 BusinessError，
便于在命令执行器、事件分发等边界处统一捕获并记录日志。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "INVALID_COMMAND"）。
        message: 可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 descriptor、endpoint 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class ConfigError(BusinessError):
    """配置错误，例如缺少挂载点或身份标识；对初始化是致命的。"""


class ProtocolError(BusinessError):
    """服务端响应格式错误或未知命令。"""


class StorageError(BusinessError):
    """持久化介质不可用（配额、禁用、沙箱等）。"""


class ValidationError(BusinessError):
    """参数或注册表校验失败。"""
