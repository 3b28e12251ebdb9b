from __future__ import annotations

from datetime import datetime, timezone

import pytest

from family_plan.errors import NotFoundError, ValidationError
from family_plan.todos.todo_service import TodoService, serialize_todo


def _utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture()
def synced(service: TodoService, write_doc, alice_doc, bob_doc) -> TodoService:
    write_doc("alice.md", alice_doc)
    write_doc("bob.md", bob_doc)
    service.sync()
    return service


def _find(todos: list[dict], title: str) -> dict:
    return next(t for t in todos if t["title"] == title)


def test_list_orders_by_member_category_time_title(synced: TodoService) -> None:
    titles = [t["title"] for t in synced.list_todos()]
    assert titles == [
        "Take out trash",
        "Brush teeth",
        "Pay allowance",
        "Water plants",
        "Read chapter 3",
    ]


def test_serialized_shape(synced: TodoService) -> None:
    brush = _find(synced.list_todos(), "Brush teeth")

    assert brush["status"] == "PENDING"
    assert brush["timeOfDay"] == "07:30"
    assert brush["timezone"] == "America/Los_Angeles"
    assert brush["tags"] == []
    assert brush["member"] == {
        "id": brush["member"]["id"],
        "name": "Alice",
        "slug": "alice",
        "colorHex": "#f97316",
    }
    assert brush["recurring"]["frequency"] == "DAILY"
    assert brush["recurring"]["timezone"] == "America/Los_Angeles"
    assert brush["completedAt"] is None
    assert brush["clearedAt"] is None

    reading = _find(synced.list_todos(), "Read chapter 3")
    assert reading["recurring"] is None
    assert reading["member"]["colorHex"] is None


def test_serialize_todo_falls_back_to_slug(store, synced: TodoService) -> None:
    todo = store.list_todos(member_slug="bob")[0]
    out = serialize_todo(todo, members={}, rules={})
    assert out["member"]["name"] == "bob"
    assert out["recurring"] is None


def test_list_filters(synced: TodoService) -> None:
    assert len(synced.list_todos(member_slug="bob")) == 3
    assert synced.list_todos(member_slug="nobody") == []

    brush = _find(synced.list_todos(), "Brush teeth")
    synced.update_todo(brush["id"], {"status": "done"})

    done = synced.list_todos(status="DONE")
    assert [t["id"] for t in done] == [brush["id"]]
    assert len(synced.list_todos(status="pending")) == 4

    with pytest.raises(ValidationError):
        synced.list_todos(status="finished")


def test_create_todo(synced: TodoService) -> None:
    created = synced.create_todo(
        title="  Pack lunch ",
        member_slug="alice",
        category="Morning",
        time_of_day="7:05",
        tags=["school", " "],
    )

    assert created["title"] == "Pack lunch"
    assert created["timeOfDay"] == "07:05"
    assert created["tags"] == ["school"]
    assert created["timezone"] == "America/Los_Angeles"
    assert created["status"] == "PENDING"
    assert created["recurring"] is None
    assert synced.get_todo(created["id"]) == created


@pytest.mark.parametrize(
    "kwargs,error",
    [
        ({"title": "   ", "member_slug": "alice"}, ValidationError),
        ({"title": "X", "member_slug": "nobody"}, NotFoundError),
        ({"title": "X", "member_slug": "alice", "time_of_day": "25:00"}, ValidationError),
        ({"title": "X", "member_slug": "alice", "tags": "a,b"}, ValidationError),
    ],
)
def test_create_todo_rejects_bad_input(synced: TodoService, kwargs, error) -> None:
    with pytest.raises(error):
        synced.create_todo(**kwargs)


def test_update_status_stamps_and_clears(synced: TodoService) -> None:
    brush = _find(synced.list_todos(), "Brush teeth")
    now = _utc(2024, 3, 12, 16, 0)

    done = synced.update_todo(brush["id"], {"status": "DONE"}, now=now)
    assert done["status"] == "DONE"
    assert done["completedAt"] == "2024-03-12T16:00:00.000Z"

    pending = synced.update_todo(brush["id"], {"status": "PENDING"}, now=now)
    assert pending["status"] == "PENDING"
    assert pending["completedAt"] is None
    assert pending["clearedAt"] is None


def test_update_fields(synced: TodoService) -> None:
    reading = _find(synced.list_todos(), "Read chapter 3")

    updated = synced.update_todo(
        reading["id"],
        {"title": "", "timeOfDay": "16:30", "notes": None, "tags": ["school"]},
    )

    assert updated["title"] == "Read chapter 3"
    assert updated["timeOfDay"] == "16:30"
    assert updated["notes"] is None
    assert updated["tags"] == ["school"]


def test_update_rejects_bad_input(synced: TodoService) -> None:
    reading = _find(synced.list_todos(), "Read chapter 3")

    with pytest.raises(ValidationError):
        synced.update_todo(reading["id"], {"priority": 1})
    with pytest.raises(ValidationError):
        synced.update_todo(reading["id"], {"status": "LATER"})
    with pytest.raises(ValidationError):
        synced.update_todo(reading["id"], {"time_of_day": "soon"})
    with pytest.raises(NotFoundError):
        synced.update_todo(9999, {"title": "x"})
    with pytest.raises(NotFoundError):
        synced.get_todo(9999)


def test_clear_finished_hides_done_todos(synced: TodoService) -> None:
    reading = _find(synced.list_todos(), "Read chapter 3")
    brush = _find(synced.list_todos(), "Brush teeth")
    now = _utc(2024, 3, 12, 16, 0)
    synced.update_todo(reading["id"], {"status": "DONE"}, now=now)
    synced.update_todo(brush["id"], {"status": "DONE"}, now=now)

    result = synced.clear_finished("bob", now=_utc(2024, 3, 12, 16, 5))
    assert result == {"cleared": 1, "reactivated": 0}

    visible = [t["id"] for t in synced.list_todos(now=_utc(2024, 3, 12, 16, 10))]
    assert reading["id"] not in visible
    assert brush["id"] in visible

    hidden = _find(synced.list_todos(include_cleared=True, now=_utc(2024, 3, 12, 16, 10)), "Read chapter 3")
    assert hidden["clearedAt"] == "2024-03-12T16:05:00.000Z"

    assert synced.clear_finished("nobody", now=_utc(2024, 3, 12, 16, 10)) == {"cleared": 0, "reactivated": 0}


def test_list_reopens_recurring_todo_after_boundary(synced: TodoService) -> None:
    brush = _find(synced.list_todos(), "Brush teeth")
    # 09:00 in Los Angeles, after today's 07:30
    synced.update_todo(brush["id"], {"status": "DONE"}, now=_utc(2024, 3, 12, 16, 0))

    same_day = _find(synced.list_todos(now=_utc(2024, 3, 12, 20, 0)), "Brush teeth")
    assert same_day["status"] == "DONE"

    # 08:00 the next morning in Los Angeles
    next_day = _find(synced.list_todos(now=_utc(2024, 3, 13, 15, 0)), "Brush teeth")
    assert next_day["status"] == "PENDING"
    assert next_day["completedAt"] is None


def test_cleared_recurring_todo_comes_back(synced: TodoService) -> None:
    brush = _find(synced.list_todos(), "Brush teeth")
    synced.update_todo(brush["id"], {"status": "DONE"}, now=_utc(2024, 3, 12, 16, 0))
    synced.clear_finished("alice", now=_utc(2024, 3, 12, 16, 5))

    result = synced.clear_finished(now=_utc(2024, 3, 13, 15, 0))
    assert result == {"cleared": 0, "reactivated": 1}

    back = _find(synced.list_todos(now=_utc(2024, 3, 13, 15, 0)), "Brush teeth")
    assert back["status"] == "PENDING"
    assert back["clearedAt"] is None


def test_sync_without_directory(store) -> None:
    with pytest.raises(ValidationError):
        TodoService(store).sync()
