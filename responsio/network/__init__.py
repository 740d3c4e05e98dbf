"""网络层：对后端服务的请求/响应抽象。"""

from responsio.network.transport import Transport

__all__ = ["Transport"]
