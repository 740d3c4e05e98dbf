"""命令名称与处理函数签名。

注册表对本核心是封闭的：只接受 COMMAND_NAMES 中的四个名称。
"""

from typing import Any, Callable, FrozenSet


CommandHandler = Callable[[Any], None]

INIT = "init"
RESTORE = "restore"
RESET = "reset"
TEXT = "text"

COMMAND_NAMES: FrozenSet[str] = frozenset({INIT, RESTORE, RESET, TEXT})
