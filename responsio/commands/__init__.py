"""命令协议：服务端下发的命令描述符及其执行器。"""

from responsio.commands.definitions import COMMAND_NAMES, CommandHandler
from responsio.commands.executor import CommandExecutor

__all__ = ["COMMAND_NAMES", "CommandExecutor", "CommandHandler"]
