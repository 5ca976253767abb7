from dataclasses import replace

import pytest

from mission_engine.exec.engine import (
    activate_plan, evaluate_gate, get_ready_tasks, reevaluate_readiness,
    inject_upstream_context, try_advance_phase, approve_phase, ready_updates, apply_updates,
)
from mission_engine.errors import PhaseApprovalError
from mission_engine.models import Phase, Task, Edge, TestResult, PhaseUpdate, TaskUpdate

NOW = "2026-01-01T00:00:00+00:00"


def _phase(idx, gate="all_complete", status="pending"):
    return Phase(id=f"ph{idx}", plan_id="p", phase_index=idx, title=f"Phase {idx}", gate_type=gate, status=status)


def _task(key, phase, status="pending", order=0, **extra):
    return Task(id=f"t-{key}", plan_id="p", phase_id=phase, key=key, title=key.upper(), agent_id="main",
                status=status, sort_order=order, **extra)


def _edge(src, dst, kind="blocks"):
    return Edge(id=f"{src}->{dst}", plan_id="p", source_task_id=f"t-{src}", target_task_id=f"t-{dst}", edge_type=kind)


def _set(tasks, key, **changes):
    return [replace(t, **changes) if t.key == key else t for t in tasks]


# --- activation and readiness ---

def test_activate_picks_lowest_phase_index():
    phases = [_phase(1), _phase(0)]
    tasks = [_task("a", "ph0"), _task("b", "ph0"), _task("c", "ph1")]
    edges = [_edge("a", "b")]
    act = activate_plan(phases, tasks, edges, now=NOW)
    assert act.phase_updates == [PhaseUpdate("ph0", "active", started_at=NOW)]
    assert act.task_updates == [TaskUpdate("t-a", "ready")]


def test_activate_without_phases_is_noop():
    act = activate_plan([], [], [])
    assert act.phase_updates == [] and act.task_updates == []


def test_ready_requires_pending_status_and_phase():
    tasks = [_task("a", "ph0", status="in_progress"), _task("b", "ph0"), _task("c", "ph1")]
    assert [t.key for t in get_ready_tasks("ph0", tasks, [])] == ["b"]


def test_informs_edges_do_not_block():
    tasks = [_task("a", "ph0"), _task("b", "ph0")]
    assert [t.key for t in get_ready_tasks("ph0", tasks, [_edge("a", "b", "informs")])] == ["a", "b"]


@pytest.mark.parametrize("source_status,ready", [
    ("done", True), ("skipped", True), ("pending", False), ("ready", False),
    ("in_progress", False), ("review", False), ("failed", False),
])
def test_blocking_source_status(source_status, ready):
    tasks = [_task("a", "ph0", status=source_status), _task("b", "ph0")]
    keys = [t.key for t in get_ready_tasks("ph0", tasks, [_edge("a", "b")])]
    assert ("b" in keys) is ready


def test_missing_blocking_source_never_clears():
    tasks = [_task("b", "ph0")]
    assert get_ready_tasks("ph0", tasks, [_edge("ghost", "b")]) == []


def test_reevaluate_only_looks_at_completed_task_phase():
    tasks = [_task("a", "ph0", status="done"), _task("b", "ph0"), _task("c", "ph1")]
    edges = [_edge("a", "b"), _edge("a", "c")]
    assert [t.key for t in reevaluate_readiness("t-a", tasks, edges)] == ["b"]


def test_reevaluate_unknown_task_returns_nothing():
    assert reevaluate_readiness("t-nope", [_task("a", "ph0")], []) == []


def test_readiness_reverts_when_source_flips_back():
    tasks = [_task("a", "ph0", status="done"), _task("b", "ph0")]
    edges = [_edge("a", "b")]
    assert [t.key for t in reevaluate_readiness("t-a", tasks, edges)] == ["b"]
    tasks = _set(tasks, "a", status="pending")
    assert [t.key for t in reevaluate_readiness("t-a", tasks, edges)] == ["a"]


# --- gates ---

def test_empty_phase_gate_is_satisfied():
    for gate in ("all_complete", "review_approved", "test_pass", "manual_approval", "bogus"):
        assert evaluate_gate(_phase(0, gate), []).satisfied is True


def test_all_complete_gate():
    tasks = [_task("a", "ph0", status="done"), _task("b", "ph0", status="skipped"), _task("c", "ph0")]
    res = evaluate_gate(_phase(0), tasks)
    assert res.satisfied is False
    assert res.reason == "1 task(s) not yet complete: c"
    assert evaluate_gate(_phase(0), _set(tasks, "c", status="done")).satisfied is True


def test_review_gate_without_reviewed_tasks_matches_all_complete():
    tasks = [_task("a", "ph0", status="done"), _task("b", "ph0", status="failed")]
    assert evaluate_gate(_phase(0, "review_approved"), tasks).satisfied is False
    done = _set(tasks, "b", status="skipped")
    assert evaluate_gate(_phase(0, "review_approved"), done).satisfied is True


def test_review_gate_ignores_unreviewed_tasks():
    tasks = [_task("a", "ph0", status="done", review_enabled=True), _task("b", "ph0", status="failed")]
    assert evaluate_gate(_phase(0, "review_approved"), tasks).satisfied is True
    skipped = _set(tasks, "a", status="skipped")
    res = evaluate_gate(_phase(0, "review_approved"), skipped)
    assert res.satisfied is False
    assert res.reason == "1 reviewed task(s) pending: a"


def test_test_pass_gate():
    phase = _phase(0, "test_pass")
    tasks = [_task("a", "ph0", status="done")]
    res = evaluate_gate(phase, tasks, [])
    assert (res.satisfied, res.reason) == (False, "No test results submitted for this phase.")
    other = [TestResult("ph9", "unit", True)]
    assert evaluate_gate(phase, tasks, other).reason == "No test results submitted for this phase."
    failing = [TestResult("ph0", "unit", True), TestResult("ph0", "e2e", False)]
    assert evaluate_gate(phase, tasks, failing).reason == "1 test(s) failing: e2e"
    passing = [TestResult("ph0", "unit", True)]
    assert evaluate_gate(phase, tasks, passing).satisfied is True
    unfinished = evaluate_gate(phase, tasks + [_task("b", "ph0")], passing)
    assert unfinished.satisfied is False and "incomplete" in unfinished.reason


def test_manual_gate_never_auto_satisfied():
    tasks = [_task("a", "ph0", status="done")]
    res = evaluate_gate(_phase(0, "manual_approval"), tasks)
    assert (res.satisfied, res.error) == (False, False)


def test_unknown_gate_is_an_error():
    res = evaluate_gate(_phase(0, "vibes"), [_task("a", "ph0", status="done")])
    assert res.satisfied is False
    assert res.error is True
    assert "vibes" in res.reason


# --- advancement ---

def test_advance_without_active_phase():
    adv = try_advance_phase([_phase(0)], [], [])
    assert adv.gate is None and adv.advanced is False and adv.mission_complete is False


def test_advance_blocked_by_gate():
    phases = [_phase(0, status="active"), _phase(1)]
    adv = try_advance_phase(phases, [_task("a", "ph0", status="ready")], [])
    assert adv.gate.satisfied is False
    assert adv.phase_updates == [] and adv.next_phase is None and adv.completed_phase is None


def test_advance_requires_next_phase_pending():
    phases = [_phase(0, status="active"), _phase(1, status="skipped"), _phase(2)]
    adv = try_advance_phase(phases, [_task("a", "ph0", status="done")], [], now=NOW)
    assert adv.completed_phase.id == "ph0"
    assert adv.next_phase is None
    assert adv.mission_complete is True
    assert adv.phase_updates == [PhaseUpdate("ph0", "completed", completed_at=NOW)]


def test_advance_activates_next_phase_with_context():
    phases = [_phase(0, status="active"), _phase(1)]
    tasks = [_task("a", "ph0", status="done", output_text="api draft"), _task("b", "ph1"), _task("c", "ph1")]
    edges = [_edge("a", "b", "informs"), _edge("b", "c")]
    adv = try_advance_phase(phases, tasks, edges, now=NOW)
    assert adv.advanced is True
    assert adv.phase_updates == [PhaseUpdate("ph0", "completed", completed_at=NOW), PhaseUpdate("ph1", "active", started_at=NOW)]
    assert [t.key for t in adv.ready_tasks] == ["b"]
    assert adv.task_updates == [TaskUpdate("t-b", "ready", {"a": "api draft"})]


def test_approve_phase_ignores_manual_gate():
    phases = [_phase(0, "manual_approval", status="active"), _phase(1)]
    tasks = [_task("a", "ph0", status="done", output_text="api draft"), _task("b", "ph1"), _task("c", "ph1")]
    edges = [_edge("a", "b"), _edge("b", "c")]
    assert try_advance_phase(phases, tasks, edges).gate.satisfied is False
    adv = approve_phase(phases, tasks, edges, "ph0", now=NOW)
    assert (adv.gate.satisfied, adv.gate.reason) == (True, "Manually approved.")
    assert adv.completed_phase.id == "ph0" and adv.next_phase.id == "ph1"
    assert adv.phase_updates == [PhaseUpdate("ph0", "completed", completed_at=NOW), PhaseUpdate("ph1", "active", started_at=NOW)]
    assert adv.task_updates == [TaskUpdate("t-b", "ready", {"a": "api draft"})]


def test_approve_phase_completes_unfinished_work():
    phases = [_phase(0, status="active"), _phase(1, status="skipped"), _phase(2)]
    adv = approve_phase(phases, [_task("a", "ph0", status="in_progress"), _task("c", "ph2")], [], "ph0", now=NOW)
    assert adv.next_phase.id == "ph2"
    assert [t.key for t in adv.ready_tasks] == ["c"]


def test_approve_last_phase_completes_mission():
    adv = approve_phase([_phase(0, "manual_approval", status="active")], [], [], "ph0", now=NOW)
    assert adv.mission_complete is True
    assert adv.phase_updates == [PhaseUpdate("ph0", "completed", completed_at=NOW)]


@pytest.mark.parametrize("phase_id,status", [("ph9", "active"), ("ph0", "pending"), ("ph0", "completed")])
def test_approve_phase_requires_active_phase(phase_id, status):
    with pytest.raises(PhaseApprovalError):
        approve_phase([_phase(0, "manual_approval", status=status)], [], [], phase_id)


# --- context ---

def test_inject_upstream_context_uses_both_edge_types():
    tasks = [_task("a", "ph0", output_text="A out"), _task("b", "ph0", output_text=""),
             _task("c", "ph0", output_text="C out"), _task("d", "ph1")]
    edges = [_edge("a", "d"), _edge("b", "d"), _edge("c", "d", "informs"), _edge("d", "a")]
    assert inject_upstream_context(tasks[3], tasks, edges) == {"a": "A out", "c": "C out"}


def test_ready_updates_attach_context():
    tasks = [_task("a", "ph0", status="done", output_text="A"), _task("b", "ph0")]
    updates = ready_updates([tasks[1]], tasks, [_edge("a", "b")])
    assert updates == [TaskUpdate("t-b", "ready", {"a": "A"})]


def test_apply_updates_returns_new_records():
    phases = [_phase(0)]
    tasks = [_task("a", "ph0", input_context={"x": "1"})]
    new_phases, new_tasks = apply_updates(phases, tasks, [PhaseUpdate("ph0", "active", started_at=NOW)],
                                          [TaskUpdate("t-a", "ready")])
    assert new_phases[0].status == "active" and new_phases[0].started_at == NOW
    assert new_tasks[0].status == "ready" and new_tasks[0].input_context == {"x": "1"}
    assert phases[0].status == "pending" and tasks[0].status == "pending"


# --- end to end ---

def test_two_phase_scenario():
    phases = [_phase(0), _phase(1)]
    tasks = [_task("x", "ph0", order=0), _task("y", "ph0", order=1), _task("z", "ph1", order=2)]
    edges = [_edge("x", "y")]

    act = activate_plan(phases, tasks, edges, now=NOW)
    phases, tasks = apply_updates(phases, tasks, act.phase_updates, act.task_updates)
    assert [p.status for p in phases] == ["active", "pending"]
    assert {t.key: t.status for t in tasks} == {"x": "ready", "y": "pending", "z": "pending"}

    tasks = _set(tasks, "x", status="done", output_text="x result")
    newly = reevaluate_readiness("t-x", tasks, edges)
    assert [t.key for t in newly] == ["y"]
    phases, tasks = apply_updates(phases, tasks, task_updates=ready_updates(newly, tasks, edges))
    assert {t.key: t.input_context for t in tasks}["y"] == {"x": "x result"}
    assert try_advance_phase(phases, tasks, edges).gate.satisfied is False

    tasks = _set(tasks, "y", status="done")
    adv = try_advance_phase(phases, tasks, edges, now=NOW)
    assert adv.gate.satisfied is True
    assert adv.next_phase.id == "ph1"
    assert [t.key for t in adv.ready_tasks] == ["z"]
    phases, tasks = apply_updates(phases, tasks, adv.phase_updates, adv.task_updates)
    assert [p.status for p in phases] == ["completed", "active"]

    tasks = _set(tasks, "z", status="done")
    final = try_advance_phase(phases, tasks, edges, now=NOW)
    assert final.mission_complete is True
