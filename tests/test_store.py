import pytest
from sqlmodel import Session

import store
from db import engine
from errors import ConflictError, InvalidInputError, NotFoundError
from models import Need, Person


def _competing_write(need_id: int, amount: int) -> None:
    """Commit a change to the same need from another connection."""
    with Session(engine) as other:
        need = other.get(Need, need_id)
        need.pledged_amount += amount
        other.add(need)
        other.commit()


class TestTransactionalUpdate:

    def test_applies_and_commits(self, session, make_need):
        need = make_need(quantity=10)
        version = need.version

        def bump(document):
            document.pledged_amount += 3

        updated = store.transactional_update(session, "needs", need.id, bump)

        assert updated.pledged_amount == 3
        assert updated.version == version + 1

    def test_reruns_body_after_concurrent_write(self, session, make_need):
        need = make_need(quantity=10)
        calls = []

        def bump(document):
            calls.append(document.pledged_amount)
            if len(calls) == 1:
                _competing_write(need.id, 5)
            document.pledged_amount += 1

        updated = store.transactional_update(session, "needs", need.id, bump)

        assert calls == [0, 5]
        assert updated.pledged_amount == 6

    def test_gives_up_after_max_attempts(self, session, make_need):
        need = make_need(quantity=100)
        calls = []

        def always_loses(document):
            calls.append(document.pledged_amount)
            _competing_write(need.id, 5)
            document.pledged_amount += 1

        with pytest.raises(ConflictError) as exc_info:
            store.transactional_update(session, "needs", need.id, always_loses, max_attempts=2)

        assert len(calls) == 2
        assert exc_info.value.details["attempts"] == 2
        session.refresh(need)
        assert need.pledged_amount == 10

    def test_body_error_writes_nothing(self, session, make_need):
        need = make_need(quantity=10)

        def fails(document):
            document.pledged_amount = 99
            raise ValueError("stop")

        with pytest.raises(ValueError):
            store.transactional_update(session, "needs", need.id, fails)

        session.refresh(need)
        assert need.pledged_amount == 0

    def test_returns_body_result(self, session, make_need):
        need = make_need()

        result = store.transactional_update(session, "needs", need.id, lambda d: "done")

        assert result == "done"

    def test_missing_document(self, session):
        with pytest.raises(NotFoundError) as exc_info:
            store.transactional_update(session, "needs", 404, lambda d: None)

        assert exc_info.value.details == {"collection": "needs", "id": 404}


class TestDocuments:

    def test_invalid_collection(self, session):
        with pytest.raises(InvalidInputError, match="Invalid collection name."):
            store.get_document(session, "donations", 1)

    def test_create_checks_model(self, session):
        with pytest.raises(InvalidInputError):
            store.create_document(
                session, "needs",
                Person(name="Sunil", district="Matara", last_seen_location="Beach road"),
            )

    def test_list_is_newest_first(self, session, make_need):
        first = make_need()
        second = make_need()
        third = make_need()

        ids = [n.id for n in store.list_documents(session, "needs")]

        assert ids == [third.id, second.id, first.id]

    def test_list_with_filter(self, session, make_need):
        make_need(district="Galle")
        kandy = make_need(district="Kandy")

        found = store.list_documents(session, "needs", Need.district == "Kandy")

        assert [n.id for n in found] == [kandy.id]

    def test_delete_removes_need_and_ledger(self, session, make_need):
        from services import needs as engine_service

        need = make_need(quantity=10)
        engine_service.pledge(session, need.id, 2, "5678")

        store.delete_document(session, "needs", need.id)

        with pytest.raises(NotFoundError):
            store.get_document(session, "needs", need.id)
        assert engine_service._active_entries(session, need.id) == []

    def test_post_key(self):
        assert store.post_key("people", 7) == "people/7"


def test_subscribe_receives_snapshots(session, make_need):
    snapshots = []
    unsubscribe = store.subscribe("needs", snapshots.append)
    try:
        need = make_need()
        store.transactional_update(
            session, "needs", need.id, lambda d: setattr(d, "item", "Tents")
        )
    finally:
        unsubscribe()

    assert len(snapshots) == 2
    assert [n.item for n in snapshots[-1]] == ["Tents"]

    make_need()
    assert len(snapshots) == 2


def test_failing_listener_does_not_break_writes(session, make_need):
    def broken(snapshot):
        raise RuntimeError("listener down")

    unsubscribe = store.subscribe("needs", broken)
    try:
        need = make_need()
    finally:
        unsubscribe()

    assert need.id is not None
