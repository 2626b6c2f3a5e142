import pytest

from chat_core.domain.conversation import ConversationStore
from chat_core.domain.exceptions import ValidationError
from chat_core.domain.models import Message


def test_snapshot_keeps_append_order():
    store = ConversationStore()
    msgs = [
        Message(role="user", content="one"),
        Message(role="assistant", content="two"),
        Message(role="user", content="three"),
    ]
    for m in msgs:
        store.append(m)
    assert [m.content for m in store.snapshot()] == ["one", "two", "three"]
    assert len(store) == 3


def test_snapshot_is_not_affected_by_later_appends():
    store = ConversationStore()
    store.append(Message(role="user", content="hi"))
    snap = store.snapshot()
    store.append(Message(role="assistant", content="hello"))
    assert len(snap) == 1
    assert isinstance(snap, tuple)


def test_messages_are_immutable():
    msg = Message(role="user", content="hi")
    with pytest.raises(AttributeError):
        msg.content = "changed"


def test_reset_empties_transcript():
    store = ConversationStore()
    store.append(Message(role="user", content="hi"))
    store.append(Message(role="assistant", content="hello"))
    store.reset()
    assert store.snapshot() == ()
    store.reset()
    assert store.snapshot() == ()


def test_system_messages_are_never_stored():
    store = ConversationStore(system_instruction="be terse")
    with pytest.raises(ValidationError) as exc:
        store.append(Message(role="system", content="be terse"))
    assert exc.value.code == "INVALID_ROLE"
    assert store.snapshot() == ()


def test_empty_user_message_rejected():
    store = ConversationStore()
    with pytest.raises(ValidationError):
        store.append(Message(role="user", content="   "))


def test_system_message_synthesized_from_instruction():
    store = ConversationStore(system_instruction="  be terse ")
    sm = store.system_message()
    assert sm.role == "system"
    assert sm.content == "be terse"
    store.system_instruction = ""
    assert store.system_message() is None
