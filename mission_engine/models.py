from dataclasses import dataclass, field
from datetime import datetime, timezone

DONE_STATES = ("done", "skipped")

def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()

@dataclass(frozen=True)
class CircuitBreakerConfig:
    on_task_failure: str = "stop_phase"
    max_phase_failures: int = 2
    @classmethod
    def from_dict(cls, raw: dict|None) -> "CircuitBreakerConfig":
        merged = {**DEFAULT_CIRCUIT_BREAKER, **(raw or {})}
        return cls(on_task_failure=merged["on_task_failure"], max_phase_failures=int(merged["max_phase_failures"]))
    def to_dict(self) -> dict:
        return {"on_task_failure": self.on_task_failure, "max_phase_failures": self.max_phase_failures}

DEFAULT_CIRCUIT_BREAKER = {"on_task_failure": "stop_phase", "max_phase_failures": 2}

@dataclass(frozen=True)
class Plan:
    id: str
    mission_id: str
    version: int
    title: str
    status: str = "draft"
    description: str|None = None
    circuit_breaker_config: CircuitBreakerConfig = field(default_factory=CircuitBreakerConfig)
    created_by: str = "planner"
    approved_by: str|None = None
    approved_at: str|None = None

@dataclass(frozen=True)
class Phase:
    id: str
    plan_id: str
    phase_index: int
    title: str
    gate_type: str = "all_complete"
    status: str = "pending"
    description: str|None = None
    started_at: str|None = None
    completed_at: str|None = None

@dataclass(frozen=True)
class Task:
    id: str
    plan_id: str
    phase_id: str
    key: str
    title: str
    instructions: str = ""
    agent_id: str = ""
    status: str = "pending"
    priority: str = "medium"
    domains: tuple = ()
    review_enabled: bool = False
    review_agent_id: str|None = None
    max_revisions: int = 1
    revision_round: int = 0
    input_context: dict|None = None
    output_text: str|None = None
    output_artifacts: tuple = ()
    error_message: str|None = None
    started_at: str|None = None
    completed_at: str|None = None
    sort_order: int = 0

@dataclass(frozen=True)
class Edge:
    id: str
    plan_id: str
    source_task_id: str
    target_task_id: str
    edge_type: str = "blocks"

@dataclass(frozen=True)
class TestResult:
    __test__ = False  # not a pytest class
    phase_id: str
    test_name: str
    passed: bool
    task_id: str|None = None
    output: str|None = None

# --- engine results and mutations ---

@dataclass(frozen=True)
class GateResult:
    satisfied: bool
    reason: str|None = None
    error: bool = False

@dataclass(frozen=True)
class CircuitBreakerResult:
    action: str = "none"
    reason: str|None = None
    @property
    def should_stop(self) -> bool: return self.action != "none"

@dataclass(frozen=True)
class PhaseUpdate:
    id: str
    status: str
    started_at: str|None = None
    completed_at: str|None = None

@dataclass(frozen=True)
class TaskUpdate:
    id: str
    status: str
    input_context: dict|None = None

@dataclass(frozen=True)
class PlanUpdate:
    id: str
    status: str
    approved_by: str|None = None
    approved_at: str|None = None

@dataclass
class Activation:
    phase_updates: list = field(default_factory=list)
    task_updates: list = field(default_factory=list)

@dataclass
class Advancement:
    gate: GateResult|None = None
    completed_phase: Phase|None = None
    next_phase: Phase|None = None
    ready_tasks: list = field(default_factory=list)
    phase_updates: list = field(default_factory=list)
    task_updates: list = field(default_factory=list)
    @property
    def advanced(self) -> bool: return self.next_phase is not None
    @property
    def mission_complete(self) -> bool:
        return self.completed_phase is not None and self.next_phase is None
