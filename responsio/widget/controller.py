"""会话控制器。

持有聊天窗口的全部状态（每个实例一份），实现 init / restore / reset / text
四个命令处理函数，并把用户输入转成 Transport 请求，响应中的 commands
再交给 CommandExecutor 执行。

状态机：Uninitialized --init(options)--> Ready。
"""

from enum import Enum
from typing import Any, Dict, Mapping, Optional
from urllib.parse import quote

from responsio.commands.definitions import INIT, RESET, RESTORE, TEXT, CommandHandler
from responsio.commands.executor import CommandExecutor
from responsio.config.settings import Settings, settings
from responsio.dom.base import DomAdapter, Document
from responsio.dom.memory import Element, Event
from responsio.domain.exceptions import ConfigError, ValidationError
from responsio.domain.models import ConfigTree, ExecutionReport
from responsio.infrastructure.logging.logger import logger
from responsio.infrastructure.storage.history import HistoryLog
from responsio.network.transport import JSON_TYPE, Transport


CSS_ID = "pws-cb-style"
BASE_CSS_ID = "pws-cb-base-style"
WIN_ID = "pws-cb-win"
SHOW_CLASS = "pws-cb-show"
PENDING_CLASS = "pws-cb-bot-pending"

WINDOW_TEMPLATE = f"""
    <div id="{WIN_ID}" class="pws-cb-win">
        <div class="pws-cb-handle"></div>
        <div class="pws-cb-title">Title</div>
        <div class="pws-cb-chat">
        </div>
        <div class="pws-cb-footer"><textarea placeholder="Enter your message..."></textarea></div>
    </div>"""

USER_BUBBLE = '<div class="pws-cb-message pws-cb-user"><span>{}</span></div>'
BOT_BUBBLE = '<div class="pws-cb-message pws-cb-bot"><span>{}</span></div>'
PENDING_BUBBLE = f'<div class="pws-cb-message pws-cb-bot {PENDING_CLASS}"></div>'
STYLESHEET = '<link id="{id}" rel="stylesheet" type="text/css" href="{href}"/>'


class WidgetState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"


class ChatController:
    def __init__(
        self,
        cfg: ConfigTree,
        transport: Transport,
        history: HistoryLog,
        dom: DomAdapter,
        document: Document,
        defaults: Optional[Settings] = None,
    ):
        self._cfg = cfg
        self._transport = transport
        self._history = history
        self._dom = dom
        self._document = document
        self._defaults = defaults or settings
        self._state = WidgetState.UNINITIALIZED

        self.window = dom.from_string(WINDOW_TEMPLATE)
        self.handle = self.window.query_selector(".pws-cb-handle")
        self.title = self.window.query_selector(".pws-cb-title")
        self.chat = self.window.query_selector(".pws-cb-chat")
        self.input = self.window.query_selector("textarea")

        self._executor = CommandExecutor(self.handlers())

    @property
    def state(self) -> WidgetState:
        return self._state

    @property
    def history(self) -> HistoryLog:
        return self._history

    def handlers(self) -> Dict[str, CommandHandler]:
        return {
            INIT: self.init,
            RESTORE: self.restore,
            RESET: self.reset,
            TEXT: self.text,
        }

    def execute(self, commands: Any) -> ExecutionReport:
        return self._executor.execute(commands)

    # ---- 命令处理函数 ----

    def init(self, options: Optional[Mapping[str, Any]] = None) -> None:
        """安装样式表、挂载窗口并绑定事件。页面加载时由 init 命令触发一次。"""

        if self._state is WidgetState.READY:
            logger.warning("Widget already initialized")
            return
        options = options if isinstance(options, Mapping) else {}
        style = options.get("style") or self._defaults.style
        selector = options.get("selector") or self._defaults.selector
        title = options.get("title") or self._defaults.title

        try:
            attachment = self._attachment_point(selector)
        except ConfigError as e:
            logger.error(e.message, extra={"extra": {"code": e.code, "selector": selector}})
            return

        root = self._cfg.url.root
        self._document.head.append(
            self._dom.from_string(STYLESHEET.format(id=CSS_ID, href=f"{root}css/responsio-{style}.css"))
        )
        link = self._dom.from_string(STYLESHEET.format(id=BASE_CSS_ID, href=f"{root}css/responsio-base-styles.css"))
        self._document.head.append(link)

        if title:
            self.title.text_content = str(title)
        attachment.append(self.window)

        # 历史可能在样式表加载前就已恢复，加载后未加样式的高度会不同
        link.add_event_listener("load", lambda e: self._scroll_to_bottom())
        self.handle.add_event_listener("click", lambda e: self.window.toggle_class(SHOW_CLASS))
        self.input.add_event_listener("keyup", self._on_keyup)

        self._state = WidgetState.READY
        logger.info("Widget initialized", extra={"extra": {"identity": self._cfg.identity, "style": style}})

    def restore(self, _data: Any = None) -> None:
        """清空窗口并按原顺序重放历史。"""

        self.chat.clear()
        for index, fragment in enumerate(self._history.all()):
            try:
                node = self._dom.from_string(fragment)
            except ValidationError as e:
                logger.error(
                    "Skipping unreadable history entry",
                    extra={"extra": {"index": index, "code": e.code, "fragment": fragment}},
                )
                continue
            self.chat.append(node)
        self._scroll_to_bottom()

    def reset(self, _data: Any = None) -> None:
        self._history.clear()
        self.chat.clear()

    def text(self, data: Any = None) -> None:
        """输出一条机器人消息，移除等待占位符。"""

        message = "" if data is None else str(data)
        fragment = BOT_BUBBLE.format(self._dom.escape(message))

        for node in self.chat.query_selector_all(f".{PENDING_CLASS}"):
            node.remove()
        self.chat.append(self._dom.from_string(fragment))
        self._scroll_to_bottom()
        self._history.append(fragment)

    # ---- 用户输入 ----

    def submit(self, text: str) -> bool:
        if self._state is not WidgetState.READY:
            logger.warning("Widget not initialized, message dropped")
            return False
        msg = (text or "").strip()
        if not msg:
            return False

        fragment = USER_BUBBLE.format(self._dom.escape(msg))
        self.chat.append(self._dom.from_string(fragment))
        self.chat.append(self._dom.from_string(PENDING_BUBBLE))
        self._scroll_to_bottom()
        self._history.append(fragment)

        self._transport.post(
            f"chat/{quote(self._cfg.identity, safe='')}",
            {"input": msg},
            on_success=self._on_response,
            on_failure=self._on_failure,
            options={"accept": JSON_TYPE},
        )
        return True

    def boot(self) -> None:
        """页面加载时请求 init/{identity}，响应同样交给执行器。"""

        self._transport.get(
            f"init/{quote(self._cfg.identity, safe='')}",
            None,
            on_success=self._on_response,
            on_failure=self._on_failure,
            options={"accept": JSON_TYPE},
        )

    def messages(self) -> list[Element]:
        return list(self.chat.children)

    def pending(self) -> list[Element]:
        return self.chat.query_selector_all(f".{PENDING_CLASS}")

    def _attachment_point(self, selector: str) -> Element:
        attachment = self._document.query_selector(selector)
        if attachment is None:
            raise ConfigError(code="INVALID_ATTACHMENT", message="Invalid window attachment point")
        return attachment

    def _on_keyup(self, event: Event) -> None:
        if event.key == "Enter" and self.input.value.strip():
            msg = self.input.value
            self.input.value = ""
            self.submit(msg)

    def _on_response(self, response: Any) -> None:
        commands = response.get("commands") if isinstance(response, Mapping) else None
        self.execute(commands)

    def _on_failure(self, status: int, message: str) -> None:
        # 目前只记录日志，不向用户展示错误
        logger.warning("Request failed", extra={"extra": {"status": status, "error": message}})

    def _scroll_to_bottom(self) -> None:
        self.chat.scroll_to_bottom()
