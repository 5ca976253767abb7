from dataclasses import dataclass, field
from jsonschema import Draft7Validator
from .schema import PLAN_SCHEMA, GATE_TYPES, PRIORITIES
from .roster import known_agents as roster_agents

@dataclass(frozen=True)
class PlanError:
    path: str
    message: str
    def __str__(self) -> str: return f"{self.path}: {self.message}"

@dataclass
class ValidationResult:
    valid: bool
    errors: list[PlanError] = field(default_factory=list)

_SCHEMA = Draft7Validator(PLAN_SCHEMA)
_ON_STACK, _DONE = 1, 2

def _filled(value) -> bool:
    return isinstance(value, str) and value.strip() != ""

def _listed(value) -> list:
    return value if isinstance(value, list) else []

def _strings(value) -> list[str]:
    return [v for v in _listed(value) if isinstance(v, str)]

def _schema_path(parts) -> str:
    out = ""
    for p in parts:
        out += f"[{p}]" if isinstance(p, int) else (f".{p}" if out else str(p))
    return out or "plan"

def find_cycles(graph: dict[str, list[str]]) -> list[list[str]]:
    """Every distinct cycle of ``graph`` as a closed path (first key repeated last).

    Depth-first with an explicit stack so deep plans do not hit the recursion
    limit. Scanning carries on after a hit, and rotations of a cycle already
    reported are dropped.
    """
    cycles, seen, state = [], set(), {}
    for root in graph:
        if root in state: continue
        path, frames = [root], [iter(graph[root])]
        state[root] = _ON_STACK
        while frames:
            nxt = next(frames[-1], None)
            if nxt is None:
                state[path.pop()] = _DONE; frames.pop(); continue
            mark = state.get(nxt)
            if mark == _ON_STACK:
                loop = path[path.index(nxt):]
                pivot = loop.index(min(loop))
                sig = tuple(loop[pivot:] + loop[:pivot])
                if sig not in seen:
                    seen.add(sig); cycles.append(loop + [nxt])
            elif mark is None and nxt in graph:
                state[nxt] = _ON_STACK; path.append(nxt); frames.append(iter(graph[nxt]))
    return cycles

def validate_plan(plan: dict, known_agents=None) -> ValidationResult:
    """Run every check over a parsed planner output and collect all findings.

    Nothing here raises: malformed input of any shape is reported as a
    ``PlanError`` so the planner (or a human) can fix everything in one pass.
    """
    if not isinstance(plan, dict):
        return ValidationResult(False, [PlanError("plan", "Plan must be a JSON object.")])
    agents = frozenset(known_agents) if known_agents is not None else roster_agents()
    errors: list[PlanError] = []
    if not _filled(plan.get("title")):
        errors.append(PlanError("title", "Plan must have a non-empty title."))
    phases = plan.get("phases")
    if not isinstance(phases, list) or not phases:
        errors.append(PlanError("phases", "Plan must have at least one phase."))
        return ValidationResult(False, errors)

    keys, duplicates, declared = set(), [], []
    for pi, phase in enumerate(phases):
        pp = f"phases[{pi}]"
        if not isinstance(phase, dict):
            errors.append(PlanError(pp, "Phase must be an object.")); continue
        if not _filled(phase.get("title")):
            errors.append(PlanError(f"{pp}.title", "Phase must have a non-empty title."))
        gate = phase.get("gate_type")
        if gate not in (None, "") and gate not in GATE_TYPES:
            errors.append(PlanError(f"{pp}.gate_type", f'Invalid gate_type "{gate}".'))
        tasks = phase.get("tasks")
        if not isinstance(tasks, list) or not tasks:
            errors.append(PlanError(f"{pp}.tasks", "Phase must have at least one task.")); continue
        for ti, task in enumerate(tasks):
            tp = f"{pp}.tasks[{ti}]"
            if not isinstance(task, dict):
                errors.append(PlanError(tp, "Task must be an object.")); continue
            declared.append(task)
            key = task.get("key")
            if not _filled(key):
                errors.append(PlanError(f"{tp}.key", "Task must have a non-empty key."))
            elif key in keys:
                duplicates.append(key)
            else:
                keys.add(key)
            if not _filled(task.get("title")):
                errors.append(PlanError(f"{tp}.title", "Task must have a non-empty title."))
            if not _filled(task.get("instructions")):
                errors.append(PlanError(f"{tp}.instructions", "Task must have non-empty instructions."))
            agent = task.get("agent_id")
            if not (isinstance(agent, str) and agent in agents):
                errors.append(PlanError(f"{tp}.agent_id", f'Unknown agent_id "{agent}".'))
            priority = task.get("priority")
            if priority not in (None, "") and priority not in PRIORITIES:
                errors.append(PlanError(f"{tp}.priority", f'Invalid priority "{priority}".'))
            reviewer = task.get("review_agent_id")
            if task.get("review_enabled") is True and reviewer and not (isinstance(reviewer, str) and reviewer in agents):
                errors.append(PlanError(f"{tp}.review_agent_id", f'Unknown review_agent_id "{reviewer}".'))

    for key in duplicates:
        errors.append(PlanError("tasks", f'Duplicate task key "{key}".'))

    graph: dict[str, list[str]] = {}
    for task in declared:
        key = task.get("key")
        label = f"task[{key}]"
        deps = _strings(task.get("depends_on"))
        for dep in deps:
            if dep not in keys:
                errors.append(PlanError(f"{label}.depends_on", f'References unknown task key "{dep}".'))
            if dep == key:
                errors.append(PlanError(f"{label}.depends_on", "Task depends on itself."))
        for target in _strings(task.get("informs")):
            if target not in keys:
                errors.append(PlanError(f"{label}.informs", f'References unknown task key "{target}".'))
            if target == key:
                errors.append(PlanError(f"{label}.informs", "Task informs itself."))
        if _filled(key) and key not in graph:
            graph[key] = deps

    for loop in find_cycles(graph):
        errors.append(PlanError("dependencies", f"Circular dependency: {' -> '.join(loop)}"))

    for err in _SCHEMA.iter_errors(plan):
        errors.append(PlanError(_schema_path(err.absolute_path), err.message))

    return ValidationResult(not errors, errors)
