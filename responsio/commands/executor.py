from typing import Any, Dict, Iterable, Mapping, Optional

from responsio.commands.definitions import COMMAND_NAMES, CommandHandler
from responsio.domain.exceptions import ProtocolError, ValidationError
from responsio.domain.models import CommandDescriptor, ExecutionReport
from responsio.infrastructure.logging.logger import logger


class CommandExecutor:
    """按顺序把命令描述符分发给按名称注册的处理函数。

    - 输入不是列表：整批报告错误，不调用任何处理函数。
    - 未知命令或格式错误的描述符：报告后继续下一个。
    - 处理函数同步执行，第 N+1 个在第 N 个返回后才开始。
    - 处理函数抛出的异常被记录，不会逃逸到调用方。
    """

    def __init__(self, handlers: Mapping[str, CommandHandler], allowed: Optional[Iterable[str]] = None):
        allowed_names = frozenset(allowed) if allowed is not None else COMMAND_NAMES
        unknown = set(handlers) - allowed_names
        if unknown:
            raise ValidationError(
                code="UNKNOWN_HANDLER",
                message=f"Handlers not in registry: {', '.join(sorted(unknown))}",
            )
        self._handlers: Dict[str, CommandHandler] = dict(handlers)

    @property
    def names(self) -> frozenset:
        return frozenset(self._handlers)

    def execute(self, commands: Any) -> ExecutionReport:
        report = ExecutionReport()
        if not isinstance(commands, list):
            report.error = "Invalid response"
            logger.error("Invalid response", extra={"extra": {"response": repr(commands)}})
            return report

        for entry in commands:
            try:
                descriptor = CommandDescriptor.from_payload(entry)
                handler = self._handlers.get(descriptor.command)
                if handler is None:
                    raise ProtocolError(code="INVALID_COMMAND", message=f"Unknown command {descriptor.command!r}")
            except ProtocolError as e:
                report.rejected.append(entry)
                logger.error("Invalid command", extra={"extra": {"code": e.code, "error": e.message, "entry": repr(entry)}})
                continue
            try:
                handler(descriptor.data)
            except Exception:
                report.rejected.append(entry)
                logger.exception("Command failed", extra={"extra": {"command": descriptor.command}})
                continue
            report.executed.append(descriptor.command)
        return report
