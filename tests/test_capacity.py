"""Tests for attendant capacity bookkeeping."""

import logging
import threading
import uuid

from app.chat.capacity import CapacityTracker


def test_increment_and_decrement(store, tenant_id):
    attendant = store.add_attendant(tenant_id, "Ana")
    tracker = CapacityTracker(store)

    assert tracker.increment(attendant.id) == 1
    assert tracker.increment(attendant.id) == 2
    assert tracker.decrement(attendant.id) == 1
    assert store.get_attendant(attendant.id).active_conversations == 1


def test_decrement_never_goes_negative(store, tenant_id):
    attendant = store.add_attendant(tenant_id, "Ana")
    tracker = CapacityTracker(store)

    assert tracker.decrement(attendant.id) == 0
    assert tracker.decrement(attendant.id) == 0
    assert store.get_attendant(attendant.id).active_conversations == 0


def test_unknown_attendant_is_logged(store, caplog):
    tracker = CapacityTracker(store)

    with caplog.at_level(logging.WARNING, logger="app.chat.capacity"):
        assert tracker.decrement(uuid.uuid4()) is None
        assert tracker.increment(uuid.uuid4()) is None

    assert len(caplog.records) == 2


def test_reassign_moves_one_conversation(store, tenant_id):
    first = store.add_attendant(tenant_id, "Ana", active_conversations=2)
    second = store.add_attendant(tenant_id, "Bruno")
    tracker = CapacityTracker(store)

    tracker.reassign(first.id, second.id)

    assert store.get_attendant(first.id).active_conversations == 1
    assert store.get_attendant(second.id).active_conversations == 1


def test_reassign_from_nobody_only_increments(store, tenant_id):
    attendant = store.add_attendant(tenant_id, "Ana")

    CapacityTracker(store).reassign(None, attendant.id)

    assert store.get_attendant(attendant.id).active_conversations == 1


def test_concurrent_updates_are_not_lost(store, tenant_id):
    attendant = store.add_attendant(tenant_id, "Ana", active_conversations=50)
    tracker = CapacityTracker(store)

    def work(fn):
        for _ in range(25):
            fn(attendant.id)

    threads = [threading.Thread(target=work, args=(tracker.increment,)) for _ in range(4)]
    threads += [threading.Thread(target=work, args=(tracker.decrement,)) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert store.get_attendant(attendant.id).active_conversations == 50 + 100 - 50
