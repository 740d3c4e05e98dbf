import logging
import threading
import time

import httpx

from responsio.dom import Event, MemoryDocument, MemoryDom
from responsio.domain.models import ConfigTree, UrlConfig
from responsio.infrastructure.storage.history import HistoryLog
from responsio.infrastructure.storage.kv_store import KeyValueStore
from responsio.network.transport import Transport
from responsio.widget.controller import ChatController, WidgetState


CFG = ConfigTree(
    url=UrlConfig(root="https://chat.example.com/", service="https://chat.example.com/responsio/"),
    identity="abc",
)


class TransportStub:
    def __init__(self, reply=None, failure=None):
        self.calls = []
        self.reply = reply
        self.failure = failure

    def _respond(self, on_success, on_failure):
        if self.failure and on_failure:
            on_failure(*self.failure)
        elif self.reply is not None and on_success:
            on_success(self.reply)

    def post(self, endpoint, data=None, on_success=None, on_failure=None, options=None):
        self.calls.append(("POST", endpoint, data))
        self._respond(on_success, on_failure)

    def get(self, endpoint, params=None, on_success=None, on_failure=None, options=None):
        self.calls.append(("GET", endpoint, params))
        self._respond(on_success, on_failure)


def make_controller(transport=None, document=None):
    transport = transport or TransportStub()
    document = document or MemoryDocument()
    ctl = ChatController(CFG, transport, HistoryLog(KeyValueStore()), MemoryDom(), document)
    return ctl, transport, document


def texts(ctl):
    return [n.text_content for n in ctl.messages()]


def test_init_mounts_window_and_styles():
    ctl, _, doc = make_controller()
    ctl.init({"style": "dark", "title": "Help"})
    assert ctl.state is WidgetState.READY
    assert doc.query_selector("#pws-cb-win") is ctl.window
    hrefs = [link.get_attribute("href") for link in doc.head.query_selector_all("link")]
    assert hrefs == [
        "https://chat.example.com/css/responsio-dark.css",
        "https://chat.example.com/css/responsio-base-styles.css",
    ]
    assert ctl.title.text_content == "Help"


def test_init_without_attachment_point_is_fatal(caplog):
    ctl, _, doc = make_controller()
    with caplog.at_level(logging.ERROR, logger="responsio"):
        ctl.init({"selector": "#nowhere"})
    assert ctl.state is WidgetState.UNINITIALIZED
    assert doc.head.children == []
    assert ctl.window.parent is None
    assert "Invalid window attachment point" in caplog.text


def test_second_init_is_ignored():
    ctl, _, doc = make_controller()
    ctl.init({})
    ctl.init({})
    assert len(doc.head.children) == 2


def test_handle_click_toggles_visibility():
    ctl, _, _ = make_controller()
    ctl.init(None)
    ctl.handle.dispatch_event(Event("click"))
    assert "pws-cb-show" in ctl.window.class_list
    ctl.handle.dispatch_event(Event("click"))
    assert "pws-cb-show" not in ctl.window.class_list


def test_stylesheet_load_scrolls_to_bottom():
    ctl, _, doc = make_controller()
    ctl.init({})
    for i in range(3):
        ctl.history.append(f'<div class="pws-cb-message pws-cb-user"><span>{i}</span></div>')
    ctl.restore()
    ctl.chat.scroll_top = 0
    doc.head.query_selector("#pws-cb-base-style").dispatch_event(Event("load"))
    assert ctl.chat.scroll_top == ctl.chat.scroll_height - ctl.chat.client_height


def test_enter_submits_trimmed_text():
    ctl, transport, _ = make_controller()
    ctl.init({})
    ctl.input.value = "  Hello \n"
    ctl.input.dispatch_event(Event("keyup", key="Enter"))
    assert ctl.input.value == ""
    assert transport.calls == [("POST", "chat/abc", {"input": "Hello"})]
    assert texts(ctl) == ["Hello", ""]
    assert len(ctl.pending()) == 1
    assert ctl.history.all() == ['<div class="pws-cb-message pws-cb-user"><span>Hello</span></div>']


def test_blank_input_and_other_keys_are_ignored():
    ctl, transport, _ = make_controller()
    ctl.init({})
    ctl.input.value = "   "
    ctl.input.dispatch_event(Event("keyup", key="Enter"))
    ctl.input.value = "hi"
    ctl.input.dispatch_event(Event("keyup", key="a"))
    assert transport.calls == []
    assert ctl.input.value == "hi"


def test_user_text_is_escaped():
    ctl, _, _ = make_controller()
    ctl.init({})
    ctl.submit("<script>x</script>")
    assert ctl.history.all()[0] == (
        '<div class="pws-cb-message pws-cb-user"><span>&lt;script&gt;x&lt;/script&gt;</span></div>'
    )


def test_response_commands_are_executed():
    transport = TransportStub(reply={"commands": [{"command": "text", "data": "Hi there"}]})
    ctl, _, _ = make_controller(transport)
    ctl.init({})
    ctl.submit("Hello")
    assert ctl.pending() == []
    assert texts(ctl) == ["Hello", "Hi there"]
    assert len(ctl.history.all()) == 2


def test_failed_chat_request_is_only_logged(caplog):
    ctl, _, _ = make_controller(TransportStub(failure=(500, "boom")))
    ctl.init({})
    with caplog.at_level(logging.WARNING, logger="responsio"):
        ctl.submit("Hello")
    assert len(ctl.pending()) == 1
    assert "Request failed" in caplog.text


def test_text_removes_pending_and_records_history():
    ctl, _, _ = make_controller()
    ctl.init({})
    ctl.submit("q")
    ctl.text("line1\nline2")
    assert ctl.pending() == []
    assert ctl.history.all()[-1] == '<div class="pws-cb-message pws-cb-bot"><span>line1<br/>line2</span></div>'
    assert ctl.chat.scroll_top == ctl.chat.scroll_height - ctl.chat.client_height


def test_restore_is_idempotent():
    ctl, _, _ = make_controller()
    ctl.init({})
    ctl.submit("a")
    ctl.text("b")
    ctl.restore()
    first = texts(ctl)
    ctl.restore()
    assert texts(ctl) == first == ["a", "b"]


def test_reset_then_restore_leaves_surface_empty():
    ctl, _, _ = make_controller()
    ctl.init({})
    ctl.submit("a")
    ctl.reset()
    ctl.reset()
    ctl.restore()
    assert ctl.messages() == []
    assert ctl.history.all() == []


def test_boot_requests_init_and_dispatches():
    transport = TransportStub(reply={"commands": [{"command": "init", "data": {"title": "Bot"}}, {"command": "restore"}]})
    ctl, _, doc = make_controller(transport)
    ctl.boot()
    assert transport.calls == [("GET", "init/abc", None)]
    assert ctl.state is WidgetState.READY
    assert ctl.title.text_content == "Bot"


def test_non_mapping_response_is_reported(caplog):
    ctl, _, _ = make_controller(TransportStub(reply=["not", "an", "envelope"]))
    with caplog.at_level(logging.ERROR, logger="responsio"):
        ctl.boot()
    assert ctl.state is WidgetState.UNINITIALIZED
    assert "Invalid response" in caplog.text


def test_submit_does_not_wait_for_the_server():
    gate = threading.Event()

    def handler(request):
        gate.wait(5)
        return httpx.Response(200, json={"commands": [{"command": "text", "data": "Hi there"}]})

    transport = Transport(CFG, timeout=10.0, transport=httpx.MockTransport(handler))
    ctl, _, _ = make_controller(transport)
    ctl.init({})

    started = time.monotonic()
    assert ctl.submit("hi") is True
    assert time.monotonic() - started < 1.0
    assert len(ctl.history.all()) == 1
    assert len(ctl.pending()) == 1

    gate.set()
    assert transport.wait(timeout=5)
    assert ctl.pending() == []
    assert texts(ctl) == ["hi", "Hi there"]
    assert len(ctl.history.all()) == 2


def test_submit_before_init_is_dropped():
    ctl, transport, _ = make_controller()
    assert ctl.submit("hello") is False
    assert transport.calls == []
    assert ctl.history.all() == []
    assert ctl.messages() == []


def test_restore_skips_unreadable_entries(caplog):
    ctl, _, _ = make_controller()
    ctl.init({})
    for fragment in ['<div class="m">a</div>', "plain", '<div class="m">b</div>']:
        ctl.history.append(fragment)
    with caplog.at_level(logging.ERROR, logger="responsio"):
        report = ctl.execute([{"command": "restore"}])
    assert report.executed == ["restore"]
    assert report.rejected == []
    assert texts(ctl) == ["a", "b"]
    assert "Skipping unreadable history entry" in caplog.text
