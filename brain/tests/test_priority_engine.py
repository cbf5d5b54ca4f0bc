"""Tests for Eisenhower task scoring."""

from datetime import datetime, timedelta, timezone

import pytest

NOW = datetime(2026, 2, 5, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    from brain.priority import PriorityEngine
    return PriorityEngine()


def make_task(**kwargs):
    from brain.common.schemas import Task
    return Task(**kwargs)


class TestDeadlineUrgency:
    @pytest.mark.parametrize("base", [1, 3, 5, 9, None])
    def test_overdue_forces_ten(self, engine, base):
        task = make_task(id="t", urgency_score=base, deadline_at=NOW - timedelta(minutes=1))
        assert engine.classify(task, NOW).calculated_urgency == 10

    @pytest.mark.parametrize("base,expected", [(1, 5), (4, 8), (6, 10), (9, 10)])
    def test_within_a_day_adds_four_capped(self, engine, base, expected):
        task = make_task(id="t", urgency_score=base, deadline_at=NOW + timedelta(hours=23))
        assert engine.classify(task, NOW).calculated_urgency == min(10, base + 4) == expected

    def test_within_three_days_adds_two(self, engine):
        task = make_task(id="t", urgency_score=3, deadline_at=NOW + timedelta(days=2))
        assert engine.classify(task, NOW).calculated_urgency == 5

    def test_far_deadline_unchanged(self, engine):
        task = make_task(id="t", urgency_score=3, deadline_at=NOW + timedelta(days=10))
        assert engine.classify(task, NOW).calculated_urgency == 3

    def test_missing_scores_default_to_five(self, engine):
        scored = engine.classify(make_task(id="t"), NOW)
        assert scored.calculated_urgency == 5
        assert scored.calculated_importance == 5

    def test_iso_string_deadline_is_parsed(self, engine):
        task = make_task(id="t", urgency_score=2, deadline_at="2026-02-05T10:00:00Z")
        assert engine.classify(task, NOW).calculated_urgency == 10

    def test_naive_now_is_treated_as_utc(self, engine):
        task = make_task(id="t", urgency_score=2, deadline_at=NOW - timedelta(hours=1))
        assert engine.classify(task, NOW.replace(tzinfo=None)).calculated_urgency == 10


class TestDependencyPropagation:
    def test_urgent_parent_raises_child_to_eight(self, engine):
        parent = make_task(id="p", urgency_score=9)
        child = make_task(id="c", urgency_score=2, dependency_id="p")
        scored = engine.score_tasks([parent, child], NOW)
        assert scored[1].calculated_urgency == 8

    def test_fixed_time_parent_raises_child(self, engine):
        parent = make_task(id="p", urgency_score=1, type="termin")
        child = make_task(id="c", urgency_score=2, dependency_id="p")
        scored = engine.score_tasks([child, parent], NOW)
        assert scored[0].calculated_urgency == 8

    def test_parent_at_seven_does_not_trigger(self, engine):
        parent = make_task(id="p", urgency_score=7)
        child = make_task(id="c", urgency_score=2, dependency_id="p")
        assert engine.score_tasks([parent, child], NOW)[1].calculated_urgency == 2

    def test_parent_deadline_counts(self, engine):
        parent = make_task(id="p", urgency_score=3, deadline_at=NOW - timedelta(days=1))
        child = make_task(id="c", urgency_score=2, dependency_id="p")
        assert engine.score_tasks([parent, child], NOW)[1].calculated_urgency == 8

    def test_never_lowers_urgency(self, engine):
        parent = make_task(id="p", urgency_score=9)
        child = make_task(id="c", urgency_score=9.5, dependency_id="p")
        assert engine.score_tasks([parent, child], NOW)[1].calculated_urgency == 9.5

    def test_missing_parent_is_ignored(self, engine):
        child = make_task(id="c", urgency_score=2, dependency_id="ghost")
        assert engine.score_tasks([child], NOW)[0].calculated_urgency == 2

    def test_cycle_terminates(self, engine):
        a = make_task(id="a", urgency_score=9, dependency_id="b")
        b = make_task(id="b", urgency_score=2, dependency_id="a")
        scored = {t.id: t for t in engine.score_tasks([a, b], NOW)}
        assert scored["b"].calculated_urgency == 8
        # a's parent b has stored urgency 2; propagation is single hop
        assert scored["a"].calculated_urgency == 9

    def test_self_reference_is_ignored(self, engine):
        task = make_task(id="s", urgency_score=9, dependency_id="s")
        assert engine.score_tasks([task], NOW)[0].calculated_urgency == 9

    def test_transitive_chain_is_not_followed(self, engine):
        root = make_task(id="r", urgency_score=10)
        middle = make_task(id="m", urgency_score=2, dependency_id="r")
        leaf = make_task(id="l", urgency_score=2, dependency_id="m")
        scored = {t.id: t for t in engine.score_tasks([root, middle, leaf], NOW)}
        assert scored["m"].calculated_urgency == 8
        assert scored["l"].calculated_urgency == 2


class TestQuadrants:
    @pytest.mark.parametrize("urgency,importance,quadrant", [
        (5, 5, "Q1"),
        (10, 9, "Q1"),
        (4.9, 5, "Q2"),
        (5, 4.9, "Q3"),
        (1, 1, "Q4"),
    ])
    def test_threshold_is_inclusive(self, engine, urgency, importance, quadrant):
        assert engine.quadrant_for(urgency, importance).value == quadrant

    def test_labels(self):
        from brain.common.schemas import TaskQuadrant
        assert TaskQuadrant.Q1.label == "do first"
        assert TaskQuadrant.Q4.label == "eliminate"

    def test_rescoring_a_scored_task(self, engine):
        scored = engine.classify(make_task(id="t", urgency_score=2, importance_score=8), NOW)
        again = engine.classify(scored, NOW)
        assert again.quadrant == scored.quadrant
        assert again.calculated_urgency == 2


class TestFilterByWindow:
    def _scored(self, engine):
        tasks = [
            make_task(id="due_today", urgency_score=1, deadline_at=NOW + timedelta(hours=5)),
            make_task(id="due_week", urgency_score=1, deadline_at=NOW + timedelta(days=5)),
            make_task(id="due_month", urgency_score=1, deadline_at=NOW + timedelta(days=20)),
            make_task(id="no_deadline_hot", urgency_score=8),
            make_task(id="no_deadline_mild", urgency_score=4),
            make_task(id="no_deadline_cold", urgency_score=1),
        ]
        return engine.score_tasks(tasks, NOW)

    def _ids(self, engine, window):
        return {t.id for t in engine.filter_by_window(self._scored(engine), window, NOW)}

    def test_all_keeps_everything(self, engine):
        assert len(self._ids(engine, "all")) == 6

    def test_today(self, engine):
        assert self._ids(engine, "today") == {"due_today", "no_deadline_hot"}

    def test_week(self, engine):
        assert self._ids(engine, "week") == {"due_today", "due_week", "no_deadline_hot"}

    def test_month(self, engine):
        assert self._ids(engine, "month") == {
            "due_today", "due_week", "due_month", "no_deadline_hot", "no_deadline_mild",
        }

    def test_unknown_window_raises(self, engine):
        with pytest.raises(ValueError):
            engine.filter_by_window([], "fortnight", NOW)


class TestEisenhowerMatrix:
    def test_groups_and_orders(self, engine):
        from brain.common.schemas import TaskQuadrant
        tasks = [
            make_task(id="a", urgency_score=6, importance_score=9),
            make_task(id="b", urgency_score=9, importance_score=6),
            make_task(id="c", urgency_score=1, importance_score=8),
            make_task(id="d", urgency_score=1, importance_score=1),
        ]
        matrix = engine.eisenhower_matrix(tasks, "all", NOW)
        assert [t.id for t in matrix[TaskQuadrant.Q1]] == ["b", "a"]
        assert [t.id for t in matrix[TaskQuadrant.Q2]] == ["c"]
        assert matrix[TaskQuadrant.Q3] == []
        assert [t.id for t in matrix[TaskQuadrant.Q4]] == ["d"]

    def test_completed_tasks_are_left_out(self, engine):
        from brain.common.schemas import TaskQuadrant
        tasks = [make_task(id="done", urgency_score=9, importance_score=9, status="completed")]
        matrix = engine.eisenhower_matrix(tasks, "all", NOW)
        assert all(not bucket for bucket in matrix.values())
        assert set(matrix) == set(TaskQuadrant)
