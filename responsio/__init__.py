"""Responsio 顶层包。

嵌入式聊天窗口客户端的核心实现：配置发现、持久化存储、
HTTP 传输、命令执行器以及会话控制器。
"""

from responsio.api.service import ResponsioClient, activate

__all__ = ["ResponsioClient", "activate"]
