from typing import Optional, Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from responsio.dom.memory import Element


class DomAdapter(Protocol):
    """核心只依赖的两个 DOM 原语。

    - from_string(html): 解析片段，返回第一个元素。
    - escape(text): 原始文本 -> HTML 安全文本，换行转为 <br/>。
    """

    def from_string(self, html: str) -> "Element":
        ...

    def escape(self, text: str) -> str:
        ...


class Document(Protocol):
    head: "Element"
    body: "Element"

    def query_selector(self, selector: str) -> Optional["Element"]:
        ...
