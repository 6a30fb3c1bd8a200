import threading

import pytest

from web_optimizer.chat import APOLOGY_TEXT, EMPTY_REPLY_TEXT, ChatSession, build_context_summary
from web_optimizer.errors import ChatBusy, GenerationFailed
from web_optimizer.validation import validate_report

from conftest import FakeGateway, make_report_payload


@pytest.fixture
def report():
    return validate_report(make_report_payload())


def test_greeting_seeded(report, settings):
    chat = ChatSession(FakeGateway(), report, settings)
    assert len(chat.history) == 1
    greeting = chat.history[0]
    assert greeting.role == "model"
    assert greeting.text == (
        "Hello! I've analyzed https://example.com. I found 20 issues. Ask me how to fix any of them!"
    )


def test_send_appends_user_and_reply(report, settings):
    gateway = FakeGateway(replies=["Compress your hero image."])
    chat = ChatSession(gateway, report, settings)

    reply = chat.send("  How do I speed it up?  ")

    assert reply.text == "Compress your hero image."
    assert [m.role for m in chat.history] == ["model", "user", "model"]
    assert chat.history[1].text == "How do I speed it up?"
    assert not chat.pending


def test_greeting_not_sent_upstream(report, settings):
    gateway = FakeGateway(replies=["one", "two"])
    chat = ChatSession(gateway, report, settings)
    chat.send("first")
    chat.send("second")

    messages = gateway.conversations[1]["messages"]
    assert messages == [
        {"role": "user", "content": "first"},
        {"role": "assistant", "content": "one"},
        {"role": "user", "content": "second"},
    ]
    assert gateway.conversations[1]["temperature"] == settings.chat_temperature


def test_system_prompt_carries_report_context(report, settings):
    gateway = FakeGateway(replies=["ok"])
    ChatSession(gateway, report, settings).send("hi")

    system = gateway.conversations[0]["system"]
    assert "https://example.com" in system
    assert "72/100" in system
    assert "Finding 1a" in system
    assert "emergency plumber" in system


def test_context_summary_limits_findings(report):
    summary = build_context_summary(report, max_findings=3)
    assert "Finding 2a" in summary
    assert "Finding 2b" not in summary


def test_failure_becomes_apology(report, settings):
    chat = ChatSession(FakeGateway(replies=[GenerationFailed("timeout")]), report, settings)
    reply = chat.send("hello?")

    assert reply.text == APOLOGY_TEXT
    assert chat.history[-1].text == APOLOGY_TEXT
    assert not chat.pending


def test_empty_reply_placeholder(report, settings):
    chat = ChatSession(FakeGateway(replies=["  "]), report, settings)
    assert chat.send("hello?").text == EMPTY_REPLY_TEXT


def test_blank_message_rejected(report, settings):
    gateway = FakeGateway()
    chat = ChatSession(gateway, report, settings)
    with pytest.raises(ValueError):
        chat.send("   ")
    assert len(chat.history) == 1
    assert gateway.conversations == []


def test_second_send_while_pending_is_busy(report, settings):
    entered = threading.Event()
    release = threading.Event()

    class SlowGateway(FakeGateway):
        def converse(self, system, messages, *, temperature=0.7):
            entered.set()
            release.wait(5)
            return "done"

    chat = ChatSession(SlowGateway(), report, settings)
    worker = threading.Thread(target=chat.send, args=("first",))
    worker.start()
    assert entered.wait(5)

    try:
        assert chat.pending
        with pytest.raises(ChatBusy):
            chat.send("second")
    finally:
        release.set()
        worker.join(5)

    assert [m.text for m in chat.history][1:] == ["first", "done"]
