"""Unit tests for planterplan.engine.errors — Error hierarchy & serialization."""

import json

import pytest

from planterplan.engine.errors import (
    PlanterConfigError,
    PlanterError,
    PlanterHierarchyError,
    PlanterNotFoundError,
    PlanterPositionError,
    PlanterRecordError,
    PlanterValidationError,
)


class TestPlanterError:
    """Base error class tests."""

    def test_basic_creation(self):
        err = PlanterError("something broke")
        assert err.message == "something broke"
        assert str(err) == "something broke"
        assert err.error_type == "PlanterError"
        assert err.task_id is None
        assert err.root_id is None

    def test_context_fields(self):
        err = PlanterError("fail", task_id="t1", root_id="r1", operation="move", extra=5)
        assert err.task_id == "t1"
        assert err.root_id == "r1"
        assert err.operation == "move"
        assert err.context["extra"] == 5

    def test_to_dict(self):
        err = PlanterError("fail", task_id="t1", extra=5)
        d = err.to_dict()
        assert d["error_type"] == "PlanterError"
        assert d["message"] == "fail"
        assert d["task_id"] == "t1"
        assert d["context"] == {"extra": "5"}
        assert "timestamp" in d

    def test_to_json(self):
        parsed = json.loads(PlanterError("fail").to_json())
        assert parsed["error_type"] == "PlanterError"
        assert parsed["message"] == "fail"

    def test_repr(self):
        r = repr(PlanterError("fail", task_id="t1", operation="move"))
        assert r == "PlanterError: fail | task_id=t1 | operation=move"

    def test_is_exception(self):
        with pytest.raises(PlanterError):
            raise PlanterError("boom")


class TestSubclasses:
    """Each subclass carries its own context."""

    @pytest.mark.parametrize("cls", [
        PlanterValidationError,
        PlanterNotFoundError,
        PlanterHierarchyError,
        PlanterPositionError,
        PlanterRecordError,
        PlanterConfigError,
    ])
    def test_inherits_base(self, cls):
        err = cls("x")
        assert isinstance(err, PlanterError)
        assert err.error_type == cls.__name__

    def test_validation_errors(self):
        err = PlanterValidationError("bad", validation_errors=[{"loc": ["title"]}])
        assert err.validation_errors == [{"loc": ["title"]}]
        assert err.to_dict()["validation_errors"] == [{"loc": ["title"]}]

    def test_hierarchy_error(self):
        err = PlanterHierarchyError("no", task_id="b", new_parent_id="b1", reason="cycle")
        d = err.to_dict()
        assert d["new_parent_id"] == "b1"
        assert d["reason"] == "cycle"

    def test_position_error(self):
        assert PlanterPositionError("full", attempts=1).attempts == 1

    def test_record_error(self):
        err = PlanterRecordError("db down", record_id="t9")
        assert err.to_dict()["record_id"] == "t9"
