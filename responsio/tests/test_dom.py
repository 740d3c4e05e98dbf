import logging

import pytest

from responsio.dom import Event, MemoryDocument, MemoryDom
from responsio.domain.exceptions import ValidationError


def test_from_string_returns_first_element():
    dom = MemoryDom()
    node = dom.from_string('\n  <div id="w" class="a b"><span class="c">hi</span><br/></div>')
    assert node.tag == "div"
    assert node.id == "w"
    assert node.class_list == ["a", "b"]
    assert node.query_selector(".c").text_content == "hi"
    assert node.query_selector("br") is not None
    assert node.parent is None


def test_from_string_without_element():
    with pytest.raises(ValidationError):
        MemoryDom().from_string("just text")


def test_escape_converts_newlines():
    assert MemoryDom().escape('<b>"a" & b</b>\nnext') == '&lt;b&gt;"a" &amp; b&lt;/b&gt;<br/>next'


def test_escaped_text_round_trips_through_parser():
    dom = MemoryDom()
    node = dom.from_string(f"<span>{dom.escape('1 < 2')}</span>")
    assert node.text_content == "1 < 2"


def test_document_query_and_tree_ops():
    doc = MemoryDocument()
    assert doc.query_selector("body") is doc.body
    assert doc.query_selector("#missing") is None
    dom = MemoryDom()
    a, b = dom.from_string("<p>a</p>"), dom.from_string("<p>b</p>")
    doc.body.append(a, b)
    assert [n.text_content for n in doc.body.query_selector_all("p")] == ["a", "b"]
    a.remove()
    assert doc.body.children == [b]
    doc.body.clear()
    assert doc.body.children == []


def test_toggle_class():
    node = MemoryDom().from_string('<div class="x"></div>')
    assert node.toggle_class("show") is True
    assert node.matches(".show")
    assert node.toggle_class("show") is False
    assert node.get_attribute("class") == "x"


def test_listener_errors_are_contained(caplog):
    node = MemoryDom().from_string("<div></div>")
    seen = []

    def bad(event):
        raise RuntimeError("boom")

    node.add_event_listener("click", bad)
    node.add_event_listener("click", lambda e: seen.append(e.target))
    with caplog.at_level(logging.ERROR, logger="responsio"):
        node.dispatch_event(Event("click"))
    assert seen == [node]
    assert "Event listener failed" in caplog.text


def test_scroll_to_bottom():
    dom = MemoryDom()
    chat = dom.from_string("<div></div>")
    chat.client_height = 30
    for _ in range(4):
        chat.append(dom.from_string("<p>x</p>"))
    chat.scroll_to_bottom()
    assert chat.scroll_top == chat.scroll_height - chat.client_height
