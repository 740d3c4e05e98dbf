"""DOM 协作者：片段解析与文本转义原语，以及一个内存实现。"""

from responsio.dom.base import DomAdapter
from responsio.dom.memory import Element, Event, MemoryDocument, MemoryDom

__all__ = ["DomAdapter", "Element", "Event", "MemoryDocument", "MemoryDom"]
