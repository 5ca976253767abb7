from dataclasses import dataclass, field, replace
from ..models import Plan, Phase, Task, Edge, TestResult, utcnow
from ..utils.logger import debug, info, warn, error
from .engine import activate_plan, reevaluate_readiness, ready_updates, try_advance_phase, approve_phase, apply_updates
from .breaker import evaluate_circuit_breaker

@dataclass
class RunOutcome:
    status: str  # completed | stalled | stopped
    phases: list[Phase]
    tasks: list[Task]
    log: list[str] = field(default_factory=list)

def _update(tasks: list[Task], task_id: str, **changes) -> list[Task]:
    return [replace(t, **changes) if t.id == task_id else t for t in tasks]

def dry_run(plan: Plan, phases: list[Phase], tasks: list[Task], edges: list[Edge],
            fail_keys=(), test_results: list[TestResult]|None = None, approve_manual: bool = False) -> RunOutcome:
    """Drive a plan in memory the way a live caller would, one ready task at a time.

    Ready tasks are completed with a synthetic output (or failed when their key
    is in ``fail_keys``) until the mission completes, a gate cannot pass, or
    the circuit breaker trips. With ``approve_manual`` a phase waiting on a
    ``manual_approval`` gate is approved instead of stalling the run.
    """
    log: list[str] = []
    def note(msg: str, level=info): log.append(msg); level(msg)

    act = activate_plan(phases, tasks, edges)
    if not act.phase_updates:
        note("Plan has no phases, nothing to run", warn)
        return RunOutcome("completed", phases, tasks, log)
    phases, tasks = apply_updates(phases, tasks, act.phase_updates, act.task_updates)
    titles = {p.id: p.title for p in phases}
    note(f"Phase '{titles[act.phase_updates[0].id]}' active, {len(act.task_updates)} task(s) ready")

    while True:
        ready = sorted((t for t in tasks if t.status == "ready"), key=lambda t: t.sort_order)
        if ready:
            task = ready[0]
            if task.key in fail_keys:
                tasks = _update(tasks, task.id, status="failed", error_message="simulated failure")
                note(f"Task {task.key} failed", warn)
                verdict = evaluate_circuit_breaker(phases, tasks, plan.circuit_breaker_config)
                if verdict.should_stop:
                    note(f"Circuit breaker ({verdict.action}): {verdict.reason}", error)
                    return RunOutcome("stopped", phases, tasks, log)
                continue
            tasks = _update(tasks, task.id, status="done", output_text=f"[dry-run] {task.title}", completed_at=utcnow())
            note(f"Task {task.key} done ({task.agent_id})")
            unblocked = reevaluate_readiness(task.id, tasks, edges)
            if unblocked:
                phases, tasks = apply_updates(phases, tasks, task_updates=ready_updates(unblocked, tasks, edges))
                note(f"Unblocked: {', '.join(t.key for t in unblocked)}", debug)
            continue

        adv = try_advance_phase(phases, tasks, edges, test_results)
        if adv.gate is None:
            note("No active phase", warn)
            return RunOutcome("stalled", phases, tasks, log)
        if not adv.gate.satisfied and approve_manual and not adv.gate.error:
            active = next(p for p in phases if p.status == "active")
            if active.gate_type == "manual_approval":
                adv = approve_phase(phases, tasks, edges, active.id)
                note(f"Phase '{active.title}' approved manually")
        if not adv.gate.satisfied:
            note(f"Gate not satisfied: {adv.gate.reason}", error if adv.gate.error else warn)
            return RunOutcome("stalled", phases, tasks, log)
        phases, tasks = apply_updates(phases, tasks, adv.phase_updates, adv.task_updates)
        note(f"Phase '{adv.completed_phase.title}' completed")
        if adv.mission_complete:
            note("Mission complete")
            return RunOutcome("completed", phases, tasks, log)
        note(f"Phase '{adv.next_phase.title}' active, {len(adv.ready_tasks)} task(s) ready")
