"""
Tests for the in-memory notification store.
"""
import random

import pytest

from taskhub.client.store import NotificationStore
from fakes import make_notification


def true_unread(store: NotificationStore) -> int:
    return sum(1 for n in store.notifications if not n.is_read)


class Recorder:
    def __init__(self, store: NotificationStore):
        self.toasts = []
        self.changes = 0
        store.events.subscribe("new_notification", self.toasts.append)
        store.events.subscribe("changed", self._changed)

    def _changed(self):
        self.changes += 1


@pytest.fixture
def store():
    return NotificationStore()


@pytest.fixture
def recorder(store):
    return Recorder(store)


class TestReplaceAll:

    def test_first_load_is_silent(self, store, recorder):
        signalled = store.replace_all([make_notification(5), make_notification(4, is_read=True)])

        assert signalled is False
        assert recorder.toasts == []
        assert store.initialized
        assert store.unread_count == 1
        assert store.last_notification_id == 5

    def test_first_load_of_empty_list_initializes(self, store, recorder):
        store.replace_all([])
        assert store.initialized
        assert store.last_notification_id is None

        # Anything arriving after an empty first load is new
        assert store.replace_all([make_notification(1)]) is True
        assert [n.id for n in recorder.toasts] == [1]

    def test_new_newest_item_signals_once(self, store, recorder):
        store.replace_all([make_notification(1)])
        store.replace_all([make_notification(2), make_notification(1)])
        store.replace_all([make_notification(2), make_notification(1)])

        assert [n.id for n in recorder.toasts] == [2]
        assert store.last_notification_id == 2

    def test_unread_count_recomputed_from_list(self, store):
        store.replace_all([make_notification(i, is_read=(i % 3 == 0)) for i in range(10, 0, -1)])
        assert store.unread_count == true_unread(store) == 7

    def test_duplicate_ids_in_server_list_collapse(self, store):
        store.replace_all([make_notification(3), make_notification(3), make_notification(2)])
        assert [n.id for n in store.notifications] == [3, 2]
        assert store.unread_count == 2

    def test_replace_all_wins_over_earlier_upsert(self, store):
        store.replace_all([make_notification(1)])
        store.upsert(make_notification(2))

        # Server view fetched before the push landed
        store.replace_all([make_notification(1)])
        assert [n.id for n in store.notifications] == [1]
        assert store.unread_count == 1

        # A push after the replace applies on top
        store.upsert(make_notification(3))
        assert [n.id for n in store.notifications] == [3, 1]
        assert store.unread_count == 2


class TestUpsert:

    def test_upsert_prepends_and_signals(self, store, recorder):
        store.replace_all([make_notification(1)])
        assert store.upsert(make_notification(2)) is True

        assert [n.id for n in store.notifications] == [2, 1]
        assert store.unread_count == 2
        assert [n.id for n in recorder.toasts] == [2]

    def test_upsert_is_idempotent(self, store, recorder):
        store.upsert(make_notification(7))
        before = store.notifications

        assert store.upsert(make_notification(7)) is False
        assert store.notifications == before
        assert store.unread_count == 1
        assert len(recorder.toasts) == 1

    def test_upsert_of_read_item_keeps_count_true(self, store):
        store.upsert(make_notification(1, is_read=True))
        assert store.unread_count == 0 == true_unread(store)

    def test_upsert_advances_cursor_so_poll_does_not_toast_again(self, store, recorder):
        store.replace_all([make_notification(1)])
        store.upsert(make_notification(2))
        store.replace_all([make_notification(2), make_notification(1)])

        assert [n.id for n in recorder.toasts] == [2]

    def test_upsert_before_first_load_does_not_count_as_load(self, store, recorder):
        store.upsert(make_notification(9))
        assert not store.initialized

        store.replace_all([make_notification(10), make_notification(9)])
        assert [n.id for n in recorder.toasts] == [9]


class TestMarkRead:

    def test_mark_read_decrements(self, store):
        store.replace_all([make_notification(2), make_notification(1)])
        assert store.mark_read(1) is True
        assert store.get(1).is_read
        assert store.unread_count == 1

    def test_mark_read_absent_or_read_is_noop(self, store, recorder):
        store.replace_all([make_notification(1, is_read=True)])
        changes = recorder.changes

        assert store.mark_read(1) is False
        assert store.mark_read(404) is False
        assert store.unread_count == 0
        assert recorder.changes == changes

    def test_mark_read_does_not_mutate_caller_objects(self, store):
        original = make_notification(1)
        store.replace_all([original])
        store.mark_read(1)
        assert original.is_read is False

    def test_mark_all_read(self, store):
        store.replace_all([make_notification(i) for i in range(3, 0, -1)])
        assert store.mark_all_read() == 3
        assert store.unread_count == 0
        assert all(n.is_read for n in store.notifications)
        assert all(store.get(i).is_read for i in (1, 2, 3))


def test_reset_forgets_first_load(store, recorder):
    store.replace_all([make_notification(1)])
    store.reset()

    assert len(store) == 0
    assert store.unread_count == 0
    assert not store.initialized
    store.replace_all([make_notification(2)])
    assert recorder.toasts == []


def test_deleted_subject_is_kept(store):
    store.replace_all([make_notification(1, task_status="deleted")])
    assert store.get(1).subject_deleted
    assert len(store) == 1


def test_documented_scenario(store, recorder):
    store.replace_all([make_notification(5), make_notification(4, is_read=True)])
    assert store.unread_count == 1
    assert recorder.toasts == []

    store.upsert(make_notification(6))
    assert [n.id for n in store.notifications] == [6, 5, 4]
    assert store.unread_count == 2
    assert [n.id for n in recorder.toasts] == [6]

    store.upsert(make_notification(6))
    assert len(store) == 3
    assert store.unread_count == 2

    store.mark_read(5)
    assert store.unread_count == 1

    store.mark_all_read()
    assert store.unread_count == 0
    assert all(n.is_read for n in store.notifications)


@pytest.mark.parametrize("seed", [1, 7, 42, 1234])
def test_unread_count_never_drifts(seed):
    rng = random.Random(seed)
    store = NotificationStore()
    next_id = 1

    for _ in range(500):
        op = rng.choice(["replace", "upsert", "upsert_dup", "mark", "mark_all"])
        if op == "replace":
            ids = rng.sample(range(1, next_id + 5), k=rng.randint(0, min(20, next_id + 4)))
            store.replace_all([make_notification(i, is_read=rng.random() < 0.4) for i in sorted(ids, reverse=True)])
            next_id = max([next_id] + [i + 1 for i in ids])
        elif op == "upsert":
            store.upsert(make_notification(next_id, is_read=rng.random() < 0.1))
            next_id += 1
        elif op == "upsert_dup" and len(store):
            store.upsert(rng.choice(store.notifications))
        elif op == "mark" and len(store):
            store.mark_read(rng.choice(store.notifications).id)
        elif op == "mark_all":
            store.mark_all_read()

        assert store.unread_count == true_unread(store)
        assert len({n.id for n in store.notifications}) == len(store)
