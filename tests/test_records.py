"""Unit tests for planterplan.records — Task, TaskNode and patch records."""

from datetime import date

import pytest
from pydantic import ValidationError

from planterplan.records import DateRange, DateUpdate, PositionUpdate, Task, TaskNode, TaskOrigin


class TestTask:
    """Task Pydantic model."""

    def test_minimal(self):
        task = Task(id="t1")
        assert task.title == ""
        assert task.parent_task_id is None
        assert task.origin == TaskOrigin.INSTANCE
        assert task.is_complete is False
        assert task.is_root is True

    def test_ids_stringified(self):
        task = Task(id=42, parent_task_id=7, root_id=1, creator=99)
        assert task.id == "42"
        assert task.parent_task_id == "7"
        assert task.root_id == "1"
        assert task.creator == "99"

    def test_origin_stored_as_value(self):
        assert Task(id="t", origin=TaskOrigin.TEMPLATE).origin == "template"
        assert Task(id="t", origin="instance").origin == "instance"

    def test_invalid_origin(self):
        with pytest.raises(ValidationError):
            Task(id="t", origin="draft")

    def test_dates_parsed(self):
        task = Task(id="t", start_date="2024-01-01", due_date="2024-01-05T12:00:00")
        assert task.start_date == date(2024, 1, 1)
        assert task.due_date == date(2024, 1, 5)

    def test_invalid_dates_become_none(self):
        task = Task(id="t", start_date="someday", due_date="")
        assert task.start_date is None
        assert task.due_date is None

    def test_title_length(self):
        with pytest.raises(ValidationError):
            Task(id="t", title="x" * 501)

    def test_sort_key(self):
        assert Task(id="t").sort_key == 0
        assert Task(id="t", position=1500.5).sort_key == 1500.5

    def test_is_root(self):
        assert Task(id="t", parent_task_id="p").is_root is False

    def test_to_row(self):
        row = Task(id="t", parent_task_id="p", root_id="p", position=10000).to_row()
        assert row["id"] == "t"
        assert row["position"] == 10000
        assert "children" not in row

    def test_from_attributes(self):
        class Row:
            id = "r"
            title = "From ORM"
            description = None
            parent_task_id = None
            root_id = "r"
            position = 10000.0
            origin = "template"
            start_date = date(2024, 1, 1)
            due_date = None
            days_from_start = None
            is_complete = True
            creator = None

        task = Task.model_validate(Row())
        assert task.title == "From ORM"
        assert task.origin == "template"
        assert task.is_complete is True


class TestTaskNode:
    def test_round_trip_strips_children(self):
        node = TaskNode.from_task(Task(id="p", title="Parent"))
        node.children = [TaskNode.from_task(Task(id="c", parent_task_id="p"))]
        task = node.to_task()
        assert type(task) is Task
        assert task.title == "Parent"

    def test_children_default_empty(self):
        assert TaskNode(id="n").children == []


class TestPatchRecords:
    def test_date_update_row(self):
        assert DateUpdate(id="a", start_date=date(2024, 1, 10)).to_row() == {
            "id": "a", "start_date": "2024-01-10",
        }

    def test_date_update_with_due(self):
        row = DateUpdate(id="a", start_date=date(2024, 1, 10), due_date=date(2024, 1, 12)).to_row()
        assert row["due_date"] == "2024-01-12"

    def test_position_update_row(self):
        assert PositionUpdate(id="a", position=20000).to_row() == {"id": "a", "position": 20000}

    def test_date_range_defaults(self):
        r = DateRange()
        assert r.start_date is None and r.due_date is None
