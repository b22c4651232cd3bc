"""Tests for ConversationLocks."""

import threading
import time

from onboarding.core.conversation_locks import ConversationLocks


def test_entries_are_dropped_after_release():
    locks = ConversationLocks()
    with locks.hold("a"):
        with locks.hold("b"):
            assert len(locks) == 2
    assert len(locks) == 0


def test_lock_is_reentrant():
    locks = ConversationLocks()
    with locks.hold("a"):
        with locks.hold("a"):
            assert len(locks) == 1
    assert len(locks) == 0


def test_same_conversation_is_serialized():
    locks = ConversationLocks()
    active = []
    overlaps = []

    def work():
        with locks.hold("same"):
            active.append(1)
            if len(active) > 1:
                overlaps.append(1)
            time.sleep(0.01)
            active.pop()

    threads = [threading.Thread(target=work) for _ in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert overlaps == []
    assert len(locks) == 0


def test_different_conversations_do_not_block():
    locks = ConversationLocks()
    entered = threading.Event()

    def other():
        with locks.hold("other"):
            entered.set()

    with locks.hold("first"):
        thread = threading.Thread(target=other)
        thread.start()
        assert entered.wait(timeout=2)
        thread.join()
