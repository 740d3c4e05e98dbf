"""基于 html.parser 的内存 DOM。

只实现聊天窗口需要的那一小部分：元素树、简单选择器（tag / #id / .class）、
class 切换、文本、输入框 value、滚动尺寸以及事件监听。
监听器抛出的异常在分发处被捕获并记录，不会中断宿主事件循环。
"""

from __future__ import annotations

import html
from dataclasses import dataclass, field
from html.parser import HTMLParser
from typing import Any, Callable, Dict, List, Optional

from responsio.domain.exceptions import ValidationError
from responsio.infrastructure.logging.logger import logger


VOID_TAGS = {"area", "base", "br", "col", "embed", "hr", "img", "input", "link", "meta", "source", "wbr"}
LINE_HEIGHT = 20

Listener = Callable[["Event"], None]


@dataclass
class Event:
    type: str
    key: Optional[str] = None
    target: Optional["Element"] = None
    detail: Dict[str, Any] = field(default_factory=dict)


class Element:
    def __init__(self, tag: str, attrs: Optional[Dict[str, str]] = None):
        self.tag = tag.lower()
        self.attrs: Dict[str, str] = dict(attrs or {})
        self.class_list: List[str] = (self.attrs.pop("class", "") or "").split()
        self.children: List[Element] = []
        self.parent: Optional[Element] = None
        self.text = ""
        self.value = ""
        self.scroll_top = 0
        self.client_height = 0
        self._listeners: Dict[str, List[Listener]] = {}

    def __repr__(self) -> str:
        return f"<Element {self.tag} id={self.id!r} class={' '.join(self.class_list)!r}>"

    @property
    def id(self) -> Optional[str]:
        return self.attrs.get("id")

    def get_attribute(self, name: str) -> Optional[str]:
        if name == "class":
            return " ".join(self.class_list)
        return self.attrs.get(name)

    # ---- 树操作 ----

    def append(self, *nodes: "Element") -> None:
        for node in nodes:
            if node.parent is not None:
                node.remove()
            node.parent = self
            self.children.append(node)

    def remove(self) -> None:
        if self.parent is not None:
            self.parent.children.remove(self)
            self.parent = None

    def clear(self) -> None:
        while self.children:
            self.children[0].remove()

    @property
    def first_child(self) -> Optional["Element"]:
        return self.children[0] if self.children else None

    @property
    def text_content(self) -> str:
        return self.text + "".join(c.text_content for c in self.children)

    @text_content.setter
    def text_content(self, value: str) -> None:
        self.clear()
        self.text = value

    # ---- 选择器 ----

    def matches(self, selector: str) -> bool:
        selector = selector.strip()
        if selector.startswith("#"):
            return self.id == selector[1:]
        if selector.startswith("."):
            return selector[1:] in self.class_list
        return self.tag == selector.lower()

    def iter_descendants(self):
        for child in self.children:
            yield child
            yield from child.iter_descendants()

    def query_selector(self, selector: str) -> Optional["Element"]:
        return next((n for n in self.iter_descendants() if n.matches(selector)), None)

    def query_selector_all(self, selector: str) -> List["Element"]:
        return [n for n in self.iter_descendants() if n.matches(selector)]

    def toggle_class(self, name: str) -> bool:
        if name in self.class_list:
            self.class_list.remove(name)
            return False
        self.class_list.append(name)
        return True

    # ---- 滚动 ----

    @property
    def scroll_height(self) -> int:
        return max(len(self.children) * LINE_HEIGHT, self.client_height)

    def scroll_to_bottom(self) -> None:
        self.scroll_top = self.scroll_height - self.client_height

    # ---- 事件 ----

    def add_event_listener(self, event_type: str, listener: Listener) -> None:
        self._listeners.setdefault(event_type, []).append(listener)

    def dispatch_event(self, event: Event) -> None:
        event.target = event.target or self
        for listener in list(self._listeners.get(event.type, [])):
            try:
                listener(event)
            except Exception:
                logger.exception("Event listener failed", extra={"extra": {"event": event.type}})


class _FragmentBuilder(HTMLParser):
    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.root = Element("#fragment")
        self._stack: List[Element] = [self.root]

    def handle_starttag(self, tag, attrs):
        node = Element(tag, {k: v or "" for k, v in attrs})
        self._stack[-1].append(node)
        if node.tag not in VOID_TAGS:
            self._stack.append(node)

    def handle_startendtag(self, tag, attrs):
        self._stack[-1].append(Element(tag, {k: v or "" for k, v in attrs}))

    def handle_endtag(self, tag):
        tag = tag.lower()
        for i in range(len(self._stack) - 1, 0, -1):
            if self._stack[i].tag == tag:
                del self._stack[i:]
                return

    def handle_data(self, data):
        if data.strip():
            self._stack[-1].text += data


class MemoryDom:
    """DomAdapter 的内存实现。"""

    def from_string(self, markup: str) -> Element:
        builder = _FragmentBuilder()
        builder.feed(markup)
        builder.close()
        node = builder.root.first_child
        if node is None:
            raise ValidationError(code="INVALID_FRAGMENT", message="Fragment contains no element")
        node.remove()
        return node

    def escape(self, text: str) -> str:
        return html.escape(text, quote=False).replace("\n", "<br/>")


class MemoryDocument:
    """最小的文档：<html> 下含 head 与 body。"""

    def __init__(self):
        self.document_element = Element("html")
        self.head = Element("head")
        self.body = Element("body")
        self.document_element.append(self.head, self.body)

    def query_selector(self, selector: str) -> Optional[Element]:
        if self.document_element.matches(selector):
            return self.document_element
        return self.document_element.query_selector(selector)
