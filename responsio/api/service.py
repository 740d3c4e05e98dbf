"""对外 API 服务模块。

activate() 根据脚本位置与身份完成装配并返回命名空间化的客户端：
commands.{init,restore,reset,text}、network.{get,post}、storage.{get,set}、execute(list)。
未配置身份时系统不激活，返回 None。
"""

from dataclasses import dataclass
from types import SimpleNamespace
from typing import Any, Optional

import httpx

from responsio.config.settings import Settings, discover_config, settings as default_settings
from responsio.dom.base import DomAdapter, Document
from responsio.dom.memory import MemoryDocument, MemoryDom
from responsio.domain.exceptions import ConfigError
from responsio.domain.models import ConfigTree, ExecutionReport
from responsio.infrastructure.logging.logger import logger
from responsio.infrastructure.storage.history import HistoryLog
from responsio.infrastructure.storage.kv_store import FileStorageArea, KeyValueStore, StorageArea
from responsio.network.transport import Transport
from responsio.widget.controller import ChatController


@dataclass
class ResponsioClient:
    cfg: ConfigTree
    commands: SimpleNamespace
    network: SimpleNamespace
    storage: SimpleNamespace
    controller: ChatController
    transport: Transport

    def execute(self, commands: Any) -> ExecutionReport:
        return self.controller.execute(commands)

    def process_events(self, timeout: float = 0.0) -> int:
        """在宿主事件线程中执行已到达响应的回调。"""
        return self.transport.process_events(timeout)

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self.transport.wait(timeout)


def activate(
    script_src: Optional[str] = None,
    page_url: Optional[str] = None,
    identity: Optional[str] = None,
    *,
    document: Optional[Document] = None,
    dom: Optional[DomAdapter] = None,
    storage_area: Optional[StorageArea] = None,
    http_transport: Optional[httpx.BaseTransport] = None,
    cfg: Optional[Settings] = None,
    boot: bool = True,
) -> Optional[ResponsioClient]:
    """装配并启动一个客户端实例。

    Args:
        script_src: 嵌入脚本的 src（默认取配置）
        page_url: 页面地址（默认取配置）
        identity: 会话身份（默认取配置）
        document / dom: DOM 协作者（默认使用内存实现）
        storage_area: 持久化介质（默认 FileStorageArea(storage_root)）
        http_transport: 注入给 httpx 的底层 transport（测试用）
        cfg: Settings 实例
        boot: 是否立即发送 init/{identity} 请求

    Returns:
        ResponsioClient；未配置身份或脚本地址无法识别时返回 None
    """
    cfg = cfg or default_settings
    try:
        tree = discover_config(
            script_src or cfg.script_src,
            page_url or cfg.page_url,
            identity or cfg.identity,
        )
    except ConfigError as e:
        logger.error(e.message, extra={"extra": {"code": e.code, **e.extra}})
        return None
    if tree is None:
        logger.error("No identity configured, responsio not activated")
        return None

    store = KeyValueStore(
        storage_area if storage_area is not None else FileStorageArea(cfg.storage_root),
        key=cfg.storage_key,
    )
    transport = Transport(tree, timeout=cfg.http_timeout, transport=http_transport)
    controller = ChatController(
        cfg=tree,
        transport=transport,
        history=HistoryLog(store),
        dom=dom or MemoryDom(),
        document=document or MemoryDocument(),
        defaults=cfg,
    )
    client = ResponsioClient(
        cfg=tree,
        commands=SimpleNamespace(**controller.handlers()),
        network=SimpleNamespace(get=transport.get, post=transport.post),
        storage=SimpleNamespace(get=store.get, set=store.set),
        controller=controller,
        transport=transport,
    )
    logger.info(
        "Responsio activated",
        extra={"extra": {"identity": tree.identity, "service": tree.url.service, "durable": store.durable}},
    )
    if boot:
        controller.boot()
    return client
