"""命名空间化的键值存储。

整个应用状态是一棵 JSON 树，保存在持久化介质中的一个固定键
（settings.storage_key）下。路径可以是点分字符串（"a.b.c"）或键序列。

介质在构造时通过一次能力探测选定：
- DurableStrategy: 基于 FileStorageArea（类似浏览器 localStorage 的 JSON 文件），
  启动时完整读取一次，之后在内存副本上操作，每次 set 都序列化整棵树写回。
- MemoryStrategy: 仅在进程生命周期内有效的字典。

探测失败或之后写入失败时静默地、永久地退回内存模式，不再重试持久化介质。
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence, Union
from uuid import uuid4

from responsio.config.settings import settings
from responsio.domain.exceptions import StorageError, ValidationError
from responsio.infrastructure.logging.logger import logger


StorePath = Union[str, Sequence[str], None]
PROBE_KEY = "test"


def split_path(name: StorePath) -> List[str]:
    if isinstance(name, (list, tuple)):
        return [str(p) for p in name]
    return name.split(".") if name else []


def get_value(tree: Dict[str, Any], name: StorePath, default: Any = None) -> Any:
    """按路径取值；中间节点缺失或不是映射时直接返回 default，不修改树。"""

    node: Any = tree
    for leaf in split_path(name):
        if isinstance(node, dict) and leaf in node:
            node = node[leaf]
        else:
            return default
    return node


def set_value(tree: Dict[str, Any], name: StorePath, value: Any) -> Dict[str, Any]:
    """按路径赋值，自动创建缺失的中间映射。空路径替换整棵树。"""

    parts = split_path(name)
    if not parts:
        if not isinstance(value, dict):
            raise ValidationError(code="INVALID_STORE_ROOT", message="Store root must be a mapping")
        tree.clear()
        tree.update(value)
        return tree
    node = tree
    for leaf in parts[:-1]:
        if not isinstance(node.get(leaf), dict):
            node[leaf] = {}
        node = node[leaf]
    node[parts[-1]] = value
    return tree


class StorageArea(Protocol):
    """持久化介质协议（与 localStorage 的 getItem/setItem/removeItem 对应）。"""

    def get_item(self, key: str) -> Optional[str]:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...

    def remove_item(self, key: str) -> None:
        ...


class FileStorageArea:
    """以单个 JSON 文件保存 key -> 字符串 的持久化介质。"""

    def __init__(self, root: str | Path | None = None, filename: str = "local_storage.json"):
        self._root = Path(root or settings.storage_root).resolve()
        self._path = self._root / filename

    @property
    def path(self) -> Path:
        return self._path

    def get_item(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove_item(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    def _read(self) -> Dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise StorageError(code="STORE_READ_ERROR", message=str(e))
        if not isinstance(data, dict):
            raise StorageError(code="STORE_READ_ERROR", message=f"{self._path} is not a mapping")
        return data

    def _write(self, data: Dict[str, str]) -> None:
        tmp_path = self._path.parent / f"{self._path.stem}.{uuid4().hex}.tmp"
        try:
            self._root.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError as e:
            raise StorageError(code="STORE_WRITE_ERROR", message=str(e))


class MemoryStrategy:
    name = "memory"

    def __init__(self, cache: Optional[Dict[str, Any]] = None):
        self.cache: Dict[str, Any] = cache if cache is not None else {}

    def commit(self) -> None:
        pass


class DurableStrategy:
    name = "durable"

    def __init__(self, area: StorageArea, key: str):
        self._area = area
        self._key = key
        raw = area.get_item(key)
        cache = json.loads(raw) if raw else {}
        if not isinstance(cache, dict):
            raise StorageError(code="STORE_READ_ERROR", message=f"Stored document {key!r} is not a mapping")
        self.cache: Dict[str, Any] = cache

    def commit(self) -> None:
        self._area.set_item(self._key, json.dumps(self.cache, ensure_ascii=False))


class KeyValueStore:
    """get(path, default) / set(path, value)，介质对调用方透明。"""

    def __init__(self, area: Optional[StorageArea] = None, key: Optional[str] = None):
        self._key = key or settings.storage_key
        self._strategy: Union[DurableStrategy, MemoryStrategy] = self._select(area)

    @property
    def durable(self) -> bool:
        return isinstance(self._strategy, DurableStrategy)

    def get(self, name: StorePath = None, default: Any = None) -> Any:
        return get_value(self._strategy.cache, name, default)

    def set(self, name: StorePath, value: Any) -> None:
        try:
            json.dumps(value)
        except (TypeError, ValueError) as e:
            raise ValidationError(code="INVALID_STORE_VALUE", message=str(e))
        set_value(self._strategy.cache, name, value)
        try:
            self._strategy.commit()
        except (OSError, StorageError) as e:
            logger.warning(
                "Durable storage write failed, falling back to memory",
                extra={"extra": {"error": str(e)}},
            )
            self._strategy = MemoryStrategy(self._strategy.cache)

    def _select(self, area: Optional[StorageArea]) -> Union[DurableStrategy, MemoryStrategy]:
        if area is None:
            return MemoryStrategy()
        try:
            area.set_item(PROBE_KEY, PROBE_KEY)
            area.remove_item(PROBE_KEY)
            return DurableStrategy(area, self._key)
        except (OSError, ValueError, StorageError) as e:
            logger.info(
                "Durable storage not available, using memory",
                extra={"extra": {"error": str(e)}},
            )
            return MemoryStrategy()
