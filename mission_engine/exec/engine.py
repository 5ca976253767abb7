from dataclasses import replace
from ..models import (Phase, Task, Edge, TestResult, GateResult, PhaseUpdate, TaskUpdate,
                      Activation, Advancement, DONE_STATES, utcnow)
from ..errors import PhaseApprovalError
from .graph import TaskGraph

# Every entry point is pure: callers persist the returned mutations and call
# again with a fresh snapshot.

def _by_index(phases: list[Phase]) -> list[Phase]:
    return sorted(phases, key=lambda p: p.phase_index)

def _incomplete(tasks: list[Task]) -> list[Task]:
    return [t for t in tasks if t.status not in DONE_STATES]

def _ready_updates(graph: TaskGraph, ready: list[Task]) -> list[TaskUpdate]:
    return [TaskUpdate(t.id, "ready", graph.upstream_context(t.id) or None) for t in ready]

def activate_plan(phases: list[Phase], tasks: list[Task], edges: list[Edge], now: str|None = None) -> Activation:
    """Start the lowest-index phase and mark its unblocked tasks ready."""
    ordered = _by_index(phases)
    if not ordered: return Activation()
    first, graph = ordered[0], TaskGraph(tasks, edges)
    ready = graph.ready_in_phase(first.id)
    return Activation([PhaseUpdate(first.id, "active", started_at=now or utcnow())], _ready_updates(graph, ready))

def evaluate_gate(phase: Phase, phase_tasks: list[Task], test_results: list[TestResult]|None = None) -> GateResult:
    if not phase_tasks:
        return GateResult(True, "Phase has no tasks.")
    gate = phase.gate_type
    if gate == "all_complete":
        left = _incomplete(phase_tasks)
        if not left: return GateResult(True)
        return GateResult(False, f"{len(left)} task(s) not yet complete: {', '.join(t.key for t in left)}")
    if gate == "review_approved":
        reviewed = [t for t in phase_tasks if t.review_enabled]
        if not reviewed:
            left = _incomplete(phase_tasks)
            if not left: return GateResult(True)
            return GateResult(False, f"{len(left)} task(s) not yet complete: {', '.join(t.key for t in left)}")
        pending = [t for t in reviewed if t.status != "done"]
        if not pending: return GateResult(True)
        return GateResult(False, f"{len(pending)} reviewed task(s) pending: {', '.join(t.key for t in pending)}")
    if gate == "test_pass":
        results = [r for r in test_results or () if r.phase_id == phase.id]
        if not results:
            return GateResult(False, "No test results submitted for this phase.")
        failing = [r for r in results if not r.passed]
        if failing:
            return GateResult(False, f"{len(failing)} test(s) failing: {', '.join(r.test_name for r in failing)}")
        left = _incomplete(phase_tasks)
        if not left: return GateResult(True)
        return GateResult(False, f"Tests pass but {len(left)} task(s) incomplete: {', '.join(t.key for t in left)}")
    if gate == "manual_approval":
        return GateResult(False, "Awaiting manual approval.")
    return GateResult(False, f"Unknown gate type: {gate}", error=True)

def get_ready_tasks(phase_id: str, tasks: list[Task], edges: list[Edge]) -> list[Task]:
    return TaskGraph(tasks, edges).ready_in_phase(phase_id)

def reevaluate_readiness(completed_task_id: str, tasks: list[Task], edges: list[Edge]) -> list[Task]:
    """Pending tasks of the completed task's phase that are now unblocked.

    Call after a task moves to done or skipped. Other phases are never touched.
    """
    graph = TaskGraph(tasks, edges)
    completed = graph.get(completed_task_id)
    if completed is None: return []
    return graph.ready_in_phase(completed.phase_id)

def inject_upstream_context(task: Task, tasks: list[Task], edges: list[Edge]) -> dict[str, str]:
    return TaskGraph(tasks, edges).upstream_context(task.id)

def ready_updates(ready: list[Task], tasks: list[Task], edges: list[Edge]) -> list[TaskUpdate]:
    """``ready`` mutations for the given tasks with their upstream context attached."""
    return _ready_updates(TaskGraph(tasks, edges), ready)

def _advance(graph: TaskGraph, closing: Phase, nxt: Phase|None, gate: GateResult, now: str|None) -> Advancement:
    ts = now or utcnow()
    result = Advancement(gate=gate, completed_phase=closing,
                         phase_updates=[PhaseUpdate(closing.id, "completed", completed_at=ts)])
    if nxt is None: return result
    result.next_phase = nxt
    result.phase_updates.append(PhaseUpdate(nxt.id, "active", started_at=ts))
    result.ready_tasks = graph.ready_in_phase(nxt.id)
    result.task_updates = _ready_updates(graph, result.ready_tasks)
    return result

def try_advance_phase(phases: list[Phase], tasks: list[Task], edges: list[Edge],
                      test_results: list[TestResult]|None = None, now: str|None = None) -> Advancement:
    """Close the active phase if its gate holds and start the next one.

    ``next_phase`` stays None when there is no pending phase at index + 1;
    with a completed phase that means the mission is finished.
    """
    ordered = _by_index(phases)
    active = next((p for p in ordered if p.status == "active"), None)
    if active is None: return Advancement()
    graph = TaskGraph(tasks, edges)
    gate = evaluate_gate(active, graph.in_phase(active.id), test_results)
    if not gate.satisfied: return Advancement(gate=gate)
    nxt = next((p for p in ordered if p.phase_index == active.phase_index + 1 and p.status == "pending"), None)
    return _advance(graph, active, nxt, gate, now)

def approve_phase(phases: list[Phase], tasks: list[Task], edges: list[Edge],
                  phase_id: str, now: str|None = None) -> Advancement:
    """Complete the active phase ``phase_id`` whatever its gate says.

    This is how ``manual_approval`` phases move on. The next phase is the
    lowest-index pending phase after the approved one.
    """
    ordered = _by_index(phases)
    phase = next((p for p in ordered if p.id == phase_id), None)
    if phase is None: raise PhaseApprovalError(f"unknown phase '{phase_id}'")
    if phase.status != "active": raise PhaseApprovalError(f"phase '{phase.title}' is {phase.status}, not active")
    nxt = next((p for p in ordered if p.phase_index > phase.phase_index and p.status == "pending"), None)
    return _advance(TaskGraph(tasks, edges), phase, nxt, GateResult(True, "Manually approved."), now)

def apply_updates(phases: list[Phase], tasks: list[Task], phase_updates=(), task_updates=()) -> tuple[list[Phase], list[Task]]:
    """Return copies of ``phases``/``tasks`` with the mutations applied, for in-memory callers."""
    by_phase = {u.id: u for u in phase_updates}
    by_task = {u.id: u for u in task_updates}
    new_phases = []
    for p in phases:
        u = by_phase.get(p.id)
        if u is None: new_phases.append(p); continue
        new_phases.append(replace(p, status=u.status, started_at=u.started_at or p.started_at,
                                  completed_at=u.completed_at or p.completed_at))
    new_tasks = []
    for t in tasks:
        u = by_task.get(t.id)
        if u is None: new_tasks.append(t); continue
        new_tasks.append(replace(t, status=u.status,
                                 input_context=u.input_context if u.input_context is not None else t.input_context))
    return new_phases, new_tasks
