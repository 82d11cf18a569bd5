import threading

import pytest

from santa_exchange.db import ExchangeStatus, MemoryStore
from santa_exchange.services import exchange_flow, generator
from santa_exchange.services.errors import (
    AccessDenied,
    AlreadyGenerated,
    AssignmentGenerationFailed,
    ExchangeClosed,
    InsufficientParticipants,
    NotFound,
)


class StaleExchangeStore:
    """Serves a frozen copy of the exchange, as a slow concurrent reader would see it."""

    def __init__(self, store, exchange_id):
        self._store = store
        self._stale = store.get_exchange(exchange_id)

    def get_exchange(self, exchange_id):
        return self._stale

    def __getattr__(self, name):
        return getattr(self._store, name)


class ShrinkingRosterStore:
    """Hides the last participant, as if the roster changed right after it was read."""

    def __init__(self, store):
        self._store = store

    def list_participants(self, exchange_id):
        return self._store.list_participants(exchange_id)[:-1]

    def __getattr__(self, name):
        return getattr(self._store, name)


def _exchange_with(store, users, *names):
    exchange_id = exchange_flow.create_exchange(store, "Office party", "$25", users["Alice"]).id
    for name in names:
        exchange_flow.request_join(store, exchange_id, users[name])
        exchange_flow.approve_pending(store, exchange_id, users[name])
    return exchange_id


def _assert_valid(assignments, participant_ids):
    givers = [assignment.giver_id for assignment in assignments]
    recipients = [assignment.recipient_id for assignment in assignments]
    assert sorted(givers) == sorted(participant_ids)
    assert sorted(recipients) == sorted(participant_ids)
    assert all(assignment.giver_id != assignment.recipient_id for assignment in assignments)


def test_three_person_scenario(store, users):
    exchange_id = exchange_flow.create_exchange(store, "Office party", "$25", users["Alice"]).id
    exchange_flow.request_join(store, exchange_id, users["Bob"])
    exchange_flow.request_join(store, exchange_id, users["Carol"])
    exchange_flow.approve_pending(store, exchange_id, users["Bob"])
    exchange_flow.approve_pending(store, exchange_id, users["Carol"])

    assignments = generator.generate(store, exchange_id)

    assert len(assignments) == 3
    _assert_valid(assignments, [users["Alice"], users["Bob"], users["Carol"]])
    assert all(assignment.exchange_id == exchange_id for assignment in assignments)

    with pytest.raises(AlreadyGenerated):
        generator.generate(store, exchange_id)
    assert store.count_assignments(exchange_id) == 3


def test_generate_marks_exchange_assigned(store, users):
    exchange_id = _exchange_with(store, users, "Bob", "Carol")
    generator.generate(store, exchange_id, seed=4)

    exchange = store.get_exchange(exchange_id)
    assert exchange.assignments_generated is True
    assert exchange.status == ExchangeStatus.ASSIGNED
    assert exchange.assigned_at is not None


def test_generate_with_two_participants(store, users):
    exchange_id = _exchange_with(store, users, "Bob")
    with pytest.raises(InsufficientParticipants):
        generator.generate(store, exchange_id)
    assert store.get_exchange(exchange_id).assignments_generated is False


def test_generate_unknown_exchange(store, users):
    with pytest.raises(NotFound):
        generator.generate(store, 9999)


def test_generate_covers_full_roster(store, users):
    exchange_id = _exchange_with(store, users, "Bob", "Carol", "Dave", "Erin", "Frank")
    assignments = generator.generate(store, exchange_id, seed=99)

    _assert_valid(assignments, list(users.values()))
    assert store.count_assignments(exchange_id) == len(users)
    for assignment in assignments:
        assert generator.assignment_for_giver(store, exchange_id, assignment.giver_id) == assignment


def test_assignment_for_giver_before_generation(store, users):
    exchange_id = _exchange_with(store, users, "Bob", "Carol")
    assert generator.assignment_for_giver(store, exchange_id, users["Bob"]) is None
    with pytest.raises(NotFound):
        generator.assignment_for_giver(store, 9999, users["Bob"])


def test_stale_read_still_loses(store, users):
    exchange_id = _exchange_with(store, users, "Bob", "Carol")
    stale = StaleExchangeStore(store, exchange_id)
    generator.generate(store, exchange_id, seed=1)

    with pytest.raises(AlreadyGenerated):
        generator.generate(stale, exchange_id, seed=2)
    assert store.count_assignments(exchange_id) == 3


def test_roster_change_during_generation_writes_nothing(store, users):
    exchange_id = _exchange_with(store, users, "Bob", "Carol", "Dave")

    with pytest.raises(AssignmentGenerationFailed):
        generator.generate(ShrinkingRosterStore(store), exchange_id, seed=6)

    assert store.get_exchange(exchange_id).assignments_generated is False
    assert store.count_assignments(exchange_id) == 0

    assignments = generator.generate(store, exchange_id, seed=6)
    assert len(assignments) == 4


def test_commit_assignments_is_compare_and_swap(store, users):
    exchange_id = _exchange_with(store, users, "Bob", "Carol")
    pairs = [
        (users["Alice"], users["Bob"]),
        (users["Bob"], users["Carol"]),
        (users["Carol"], users["Alice"]),
    ]

    assert len(store.commit_assignments(exchange_id, pairs)) == 3
    assert store.commit_assignments(exchange_id, pairs) is None
    assert store.count_assignments(exchange_id) == 3


def _race(callers, action):
    barrier = threading.Barrier(callers)
    outcomes = []
    outcomes_lock = threading.Lock()

    def call(index):
        barrier.wait()
        result = action(index)
        with outcomes_lock:
            outcomes.append(result)

    threads = [threading.Thread(target=call, args=(index,)) for index in range(callers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return outcomes


def test_concurrent_generate_has_one_winner(store, users):
    exchange_id = _exchange_with(store, users, "Bob", "Carol", "Dave", "Erin", "Frank")

    def generate(index):
        try:
            generator.generate(store, exchange_id)
        except AlreadyGenerated:
            return "already"
        return "ok"

    outcomes = _race(6, generate)

    assert outcomes.count("ok") == 1
    assert outcomes.count("already") == 5
    _assert_valid(store.list_assignments(exchange_id), list(users.values()))


def test_admission_racing_generation_keeps_roster_and_assignments_aligned():
    for round_number in range(20):
        store = MemoryStore()
        user_ids = [store.add_user(f"user{index}", f"user{index}@example.com") for index in range(8)]
        exchange_id = exchange_flow.create_exchange(store, "Party", "$20", user_ids[0]).id
        for user_id in user_ids[1:4]:
            exchange_flow.request_join(store, exchange_id, user_id)
            exchange_flow.approve_pending(store, exchange_id, user_id)
        for user_id in user_ids[4:6]:
            exchange_flow.request_join(store, exchange_id, user_id)

        def act(index):
            try:
                if index == 0:
                    generator.generate(store, exchange_id, seed=round_number)
                elif index in (1, 2):
                    exchange_flow.approve_pending(store, exchange_id, user_ids[3 + index])
                elif index == 3:
                    exchange_flow.remove_participant(store, exchange_id, user_ids[3])
                else:
                    exchange_flow.request_join(store, exchange_id, user_ids[2 + index])
            except (ExchangeClosed, AssignmentGenerationFailed):
                return "refused"
            return "done"

        _race(6, act)

        exchange = store.get_exchange(exchange_id)
        roster = [participant.user_id for participant in store.list_participants(exchange_id)]
        assignments = store.list_assignments(exchange_id)
        if exchange.assignments_generated:
            _assert_valid(assignments, roster)
        else:
            assert assignments == []


def test_summary_shows_only_own_assignment(store, users):
    exchange_id = _exchange_with(store, users, "Bob", "Carol")
    generator.generate(store, exchange_id, seed=21)

    summary = generator.assignment_summary(store, exchange_id, users["Bob"])
    assert summary.total == 3
    assert summary.assignments_generated is True
    assert summary.own.giver_id == users["Bob"]

    organizer = generator.assignment_summary(store, exchange_id, users["Alice"])
    assert organizer.total == 3
    assert organizer.own.giver_id == users["Alice"]


def test_summary_for_organizer_outside_roster(store, users):
    exchange_id = _exchange_with(store, users, "Bob", "Carol", "Dave")
    exchange_flow.remove_participant(store, exchange_id, users["Alice"])
    generator.generate(store, exchange_id, seed=5)

    summary = generator.assignment_summary(store, exchange_id, users["Alice"])
    assert summary.total == 3
    assert summary.own is None


def test_summary_rejects_outsiders(store, users):
    exchange_id = _exchange_with(store, users, "Bob", "Carol")
    with pytest.raises(AccessDenied):
        generator.assignment_summary(store, exchange_id, users["Frank"])
    with pytest.raises(NotFound):
        generator.assignment_summary(store, 9999, users["Bob"])


def test_summary_before_generation(store, users):
    exchange_id = _exchange_with(store, users, "Bob")
    summary = generator.assignment_summary(store, exchange_id, users["Bob"])
    assert summary.total == 0
    assert summary.own is None
    assert summary.assignments_generated is False
