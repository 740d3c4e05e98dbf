"""统一的数据模型。

- ConfigTree: 加载时根据脚本位置计算出的只读配置。
- CommandDescriptor: 服务端下发的一条命令 {command, data}。
- Success / Failure: Transport 返回的结果类型。
- ExecutionReport: CommandExecutor 一次批处理的执行摘要。
"""

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Union

from responsio.domain.exceptions import ProtocolError


@dataclass(frozen=True)
class UrlConfig:
    root: str
    service: str


@dataclass(frozen=True)
class ConfigTree:
    """{url: {root, service}, identity}，页面生命周期内不可变。"""

    url: UrlConfig
    identity: str


@dataclass
class CommandDescriptor:
    """服务端下发的一条命令，仅在响应数组中的位置上有身份。"""

    command: str
    data: Any = None

    @classmethod
    def from_payload(cls, entry: Any) -> "CommandDescriptor":
        if not isinstance(entry, Mapping):
            raise ProtocolError(code="INVALID_COMMAND", message="Command descriptor is not an object")
        name = entry.get("command")
        if not isinstance(name, str) or not name:
            raise ProtocolError(code="INVALID_COMMAND", message="Command descriptor has no command name")
        return cls(command=name, data=entry.get("data"))


@dataclass
class Success:
    """成功结果：解码后的响应体（204 或空响应体时为 None）。"""

    payload: Any = None

    @property
    def ok(self) -> bool:
        return True


@dataclass
class Failure:
    """失败结果：状态码 + 错误信息。"""

    status: int
    message: str

    @property
    def ok(self) -> bool:
        return False


Result = Union[Success, Failure]


@dataclass
class ExecutionReport:
    """一次命令批处理的结果摘要。"""

    executed: List[str] = field(default_factory=list)
    rejected: List[Any] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.rejected
