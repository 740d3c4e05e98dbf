from typing import List

from responsio.infrastructure.storage.kv_store import KeyValueStore


HISTORY_KEY = "history"


class HistoryLog:
    """已渲染消息片段的只追加序列，保存在 KeyValueStore 的固定键下。

    append 是读-改-写（取整个列表、追加、写回整个列表）。执行模型是单线程的，
    因此无需加锁；多线程使用时需要自行加互斥。
    """

    def __init__(self, store: KeyValueStore, key: str = HISTORY_KEY):
        self._store = store
        self._key = key

    def append(self, fragment: str) -> None:
        history = self.all()
        history.append(fragment)
        self._store.set(self._key, history)

    def all(self) -> List[str]:
        history = self._store.get(self._key, [])
        return list(history) if isinstance(history, list) else []

    def clear(self) -> None:
        self._store.set(self._key, [])

    def __len__(self) -> int:
        return len(self.all())
