import uuid
from dataclasses import dataclass, field
from typing import Callable
from ..errors import IdMapError
from ..models import CircuitBreakerConfig, Plan, Phase, Task, Edge

# Placeholder rows. References between rows live in *_ref fields and are
# never real storage ids; materialize() turns them into engine records.

@dataclass(frozen=True)
class PlanRow:
    ref: str
    mission_id: str
    version: int
    title: str
    description: str|None
    circuit_breaker_config: CircuitBreakerConfig
    created_by: str
    status: str = "draft"
    approved_by: str|None = None
    approved_at: str|None = None

@dataclass(frozen=True)
class PhaseRow:
    ref: str
    plan_ref: str
    phase_index: int
    title: str
    description: str|None
    gate_type: str
    status: str = "pending"
    started_at: str|None = None
    completed_at: str|None = None

@dataclass(frozen=True)
class TaskRow:
    ref: str
    plan_ref: str
    phase_ref: str
    key: str
    title: str
    instructions: str
    agent_id: str
    priority: str
    domains: tuple
    review_enabled: bool
    review_agent_id: str|None
    max_revisions: int
    output_artifacts: tuple
    sort_order: int
    status: str = "pending"
    revision_round: int = 0
    input_context: dict|None = None
    output_text: str|None = None
    error_message: str|None = None
    started_at: str|None = None
    completed_at: str|None = None

@dataclass(frozen=True)
class EdgeRow:
    plan_ref: str
    source_ref: str
    target_ref: str
    edge_type: str

@dataclass
class NormalizedPlan:
    plan: PlanRow
    phases: list[PhaseRow] = field(default_factory=list)
    tasks: list[TaskRow] = field(default_factory=list)
    edges: list[EdgeRow] = field(default_factory=list)
    def placeholders(self) -> list[str]:
        return [self.plan.ref] + [p.ref for p in self.phases] + [t.ref for t in self.tasks]

def phase_ref(index: int) -> str: return f"phase_{index}"
def task_ref(key: str) -> str: return f"task_{key}"

def normalize_plan(output: dict, mission_id: str, version: int = 1, created_by: str = "planner") -> NormalizedPlan:
    """Flatten a validated planner output into storage-ready rows.

    ``sort_order`` runs across every phase in declaration order so the
    cross-phase display order survives storage.
    """
    plan = PlanRow(
        ref="plan_0", mission_id=mission_id, version=version, title=output["title"],
        description=output.get("description") or None,
        circuit_breaker_config=CircuitBreakerConfig.from_dict(output.get("circuit_breaker")),
        created_by=created_by,
    )
    result = NormalizedPlan(plan=plan)
    refs: dict[str, str] = {}
    order = 0
    for pi, phase in enumerate(output["phases"]):
        result.phases.append(PhaseRow(
            ref=phase_ref(pi), plan_ref=plan.ref, phase_index=pi, title=phase["title"],
            description=phase.get("description") or None,
            gate_type=phase.get("gate_type") or "all_complete",
        ))
        for task in phase.get("tasks") or []:
            refs[task["key"]] = task_ref(task["key"])
            max_rev = task.get("max_revisions")
            result.tasks.append(TaskRow(
                ref=refs[task["key"]], plan_ref=plan.ref, phase_ref=phase_ref(pi),
                key=task["key"], title=task["title"], instructions=task["instructions"],
                agent_id=task["agent_id"], priority=task.get("priority") or "medium",
                domains=tuple(task.get("domains") or ()),
                review_enabled=bool(task.get("review_enabled", False)),
                review_agent_id=task.get("review_agent_id") or None,
                max_revisions=1 if max_rev is None else max_rev,
                output_artifacts=tuple({**a, "url": None, "content": None} for a in task.get("output_artifacts") or ()),
                sort_order=order,
            ))
            order += 1

    for phase in output["phases"]:
        for task in phase.get("tasks") or []:
            target = refs[task["key"]]
            for dep in task.get("depends_on") or []:
                if dep in refs:
                    result.edges.append(EdgeRow(plan.ref, refs[dep], target, "blocks"))
            for informed in task.get("informs") or []:
                if informed in refs:
                    result.edges.append(EdgeRow(plan.ref, target, refs[informed], "informs"))
    return result

class IdMap:
    """Injective placeholder -> real id map populated before rows are committed."""
    def __init__(self):
        self._real: dict[str, str] = {}
        self._used: set[str] = set()

    @classmethod
    def generate(cls, normalized: NormalizedPlan, factory: Callable[[], str]|None = None) -> "IdMap":
        factory = factory or (lambda: str(uuid.uuid4()))
        ids = cls()
        for ref in normalized.placeholders(): ids.bind(ref, factory())
        return ids

    def bind(self, placeholder: str, real_id: str) -> None:
        current = self._real.get(placeholder)
        if current == real_id: return
        if current is not None:
            raise IdMapError(f"placeholder {placeholder!r} already bound to {current!r}")
        if real_id in self._used:
            raise IdMapError(f"real id {real_id!r} already bound to another placeholder")
        self._real[placeholder] = real_id; self._used.add(real_id)

    def resolve(self, placeholder: str) -> str:
        try: return self._real[placeholder]
        except KeyError: raise IdMapError(f"unresolved placeholder {placeholder!r}") from None

    def __contains__(self, placeholder) -> bool: return placeholder in self._real
    def __len__(self) -> int: return len(self._real)
    def items(self): return self._real.items()

def materialize(normalized: NormalizedPlan, ids: IdMap) -> tuple[Plan, list[Phase], list[Task], list[Edge]]:
    """Swap every placeholder for its real id and build engine records."""
    p = normalized.plan
    plan_id = ids.resolve(p.ref)
    plan = Plan(id=plan_id, mission_id=p.mission_id, version=p.version, title=p.title, status=p.status,
                description=p.description, circuit_breaker_config=p.circuit_breaker_config,
                created_by=p.created_by, approved_by=p.approved_by, approved_at=p.approved_at)
    phases = [Phase(id=ids.resolve(r.ref), plan_id=ids.resolve(r.plan_ref), phase_index=r.phase_index,
                    title=r.title, gate_type=r.gate_type, status=r.status, description=r.description,
                    started_at=r.started_at, completed_at=r.completed_at) for r in normalized.phases]
    tasks = [Task(id=ids.resolve(r.ref), plan_id=ids.resolve(r.plan_ref), phase_id=ids.resolve(r.phase_ref),
                  key=r.key, title=r.title, instructions=r.instructions, agent_id=r.agent_id, status=r.status,
                  priority=r.priority, domains=r.domains, review_enabled=r.review_enabled,
                  review_agent_id=r.review_agent_id, max_revisions=r.max_revisions,
                  revision_round=r.revision_round, input_context=r.input_context, output_text=r.output_text,
                  output_artifacts=r.output_artifacts, error_message=r.error_message,
                  started_at=r.started_at, completed_at=r.completed_at, sort_order=r.sort_order)
             for r in normalized.tasks]
    edges = [Edge(id=f"{plan_id}:{i}", plan_id=ids.resolve(e.plan_ref), source_task_id=ids.resolve(e.source_ref),
                  target_task_id=ids.resolve(e.target_ref), edge_type=e.edge_type)
             for i, e in enumerate(normalized.edges)]
    return plan, phases, tasks, edges
