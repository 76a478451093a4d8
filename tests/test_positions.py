"""Unit tests for planterplan.core.positions — sparse sibling keys and renormalization."""

import pytest

from planterplan.core.positions import (
    MIN_GAP,
    NEEDS_RENORMALIZATION,
    POSITION_STEP,
    append_position,
    calculate_position,
    needs_renormalization,
    renormalization_updates,
    renormalize,
    siblings_of,
    sort_siblings,
)
from planterplan.records import PositionUpdate


@pytest.fixture
def siblings(make_task):
    return [
        make_task("s3", parent="p", root_id="p", position=30000),
        make_task("s1", parent="p", root_id="p", position=10000),
        make_task("s2", parent="p", root_id="p", position=20000),
    ]


class TestCalculatePosition:
    """Midpoint allocation and the renormalization signal."""

    def test_constants(self):
        assert POSITION_STEP == 10000
        assert MIN_GAP == 2

    def test_midpoint(self):
        assert calculate_position(0, 1000) == 500

    def test_between_spaced_siblings(self):
        assert calculate_position(10000, 20000) == 15000

    def test_floor_midpoint(self):
        assert calculate_position(10000, 10005) == 10002

    def test_tail_append(self):
        assert calculate_position(1000, None) == 1000 + POSITION_STEP

    def test_head_insert(self):
        assert calculate_position(None, 10000) == 5000

    def test_empty_list(self):
        assert calculate_position() == POSITION_STEP

    def test_gap_of_two_signals(self):
        assert calculate_position(0, 2) is NEEDS_RENORMALIZATION

    def test_adjacent_keys_signal(self):
        assert calculate_position(10000, 10001) is NEEDS_RENORMALIZATION

    def test_equal_keys_signal(self):
        assert calculate_position(500, 500) is NEEDS_RENORMALIZATION

    def test_smallest_usable_gap(self):
        assert calculate_position(0, 3) == 1

    def test_float_keys(self):
        assert calculate_position(1.5, 101.5) == 51

    def test_custom_step_and_gap(self):
        assert calculate_position(100, None, step=10) == 110
        assert calculate_position(0, 10, min_gap=10) is NEEDS_RENORMALIZATION


class TestSiblingHelpers:
    def test_sort_siblings(self, siblings):
        assert [t.id for t in sort_siblings(siblings)] == ["s1", "s2", "s3"]

    def test_siblings_of_filters_parent_and_origin(self, siblings, make_task):
        tasks = siblings + [
            make_task("other", parent="q", root_id="q", position=1),
            make_task("tmpl", parent="p", root_id="p", position=5, origin="template"),
        ]
        assert [t.id for t in siblings_of(tasks, "p", origin="instance")] == ["s1", "s2", "s3"]
        assert [t.id for t in siblings_of(tasks, "p")] == ["tmpl", "s1", "s2", "s3"]

    def test_siblings_of_excludes_id(self, siblings):
        assert [t.id for t in siblings_of(siblings, "p", exclude_id="s2")] == ["s1", "s3"]

    def test_siblings_of_top_level(self, make_task):
        tasks = [make_task("r2", position=2), make_task("r1", position=1), make_task("c", parent="r1")]
        assert [t.id for t in siblings_of(tasks, None)] == ["r1", "r2"]

    def test_append_position(self, siblings):
        assert append_position(siblings) == 40000

    def test_append_position_empty(self):
        assert append_position([]) == POSITION_STEP

    def test_append_after_crowded_keys(self, make_task):
        crowded = [make_task("x", position=7), make_task("y", position=8)]
        assert append_position(crowded) == 10008

    def test_needs_renormalization(self, siblings, make_task):
        assert needs_renormalization(siblings) is False
        crowded = siblings + [make_task("s1b", parent="p", root_id="p", position=10001)]
        assert needs_renormalization(crowded) is True

    def test_single_sibling_never_needs_renormalization(self, make_task):
        assert needs_renormalization([make_task("only", position=1)]) is False


class TestRenormalize:
    """Re-spacing a sibling group."""

    def test_respaces_to_step_multiples(self, make_task):
        crowded = [
            make_task("b", position=10001),
            make_task("a", position=10000),
            make_task("c", position=10002),
        ]
        result = renormalize(crowded)
        assert [(t.id, t.position) for t in result] == [("a", 10000), ("b", 20000), ("c", 30000)]

    def test_idempotent(self, make_task):
        tasks = [make_task("x", position=3), make_task("y", position=1), make_task("z", position=2)]
        once = renormalize(tasks)
        twice = renormalize(once)
        assert [(t.id, t.position) for t in once] == [(t.id, t.position) for t in twice]

    def test_ties_keep_input_order(self, make_task):
        tasks = [make_task("first", position=5), make_task("second", position=5)]
        assert [t.id for t in renormalize(tasks)] == ["first", "second"]

    def test_missing_positions_sort_first(self, make_task):
        tasks = [make_task("placed", position=1), make_task("unplaced")]
        assert [(t.id, t.position) for t in renormalize(tasks)] == [("unplaced", 10000), ("placed", 20000)]

    def test_input_not_mutated(self, siblings):
        renormalize(siblings, step=5)
        assert [t.position for t in siblings] == [30000, 10000, 20000]

    def test_custom_step(self, siblings):
        assert [t.position for t in renormalize(siblings, step=100)] == [100, 200, 300]

    def test_empty(self):
        assert renormalize([]) == []

    def test_renormalization_updates(self, make_task):
        tasks = [make_task("b", position=2), make_task("a", position=1)]
        updates = renormalization_updates(tasks)
        assert all(isinstance(u, PositionUpdate) for u in updates)
        assert [u.to_row() for u in updates] == [
            {"id": "a", "position": 10000},
            {"id": "b", "position": 20000},
        ]
