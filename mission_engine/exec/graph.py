from collections import defaultdict
from ..models import Task, Edge, DONE_STATES

class TaskGraph:
    """Task arena indexed by id, with inbound adjacency built once per call."""
    def __init__(self, tasks: list[Task], edges: list[Edge]):
        self.tasks = {t.id: t for t in tasks}
        self.order = [t.id for t in tasks]
        self.inbound: dict[str, list[Edge]] = defaultdict(list)
        for e in edges: self.inbound[e.target_task_id].append(e)

    def get(self, task_id: str) -> Task|None:
        return self.tasks.get(task_id)

    def in_phase(self, phase_id: str, status: str|None = None) -> list[Task]:
        return [t for t in (self.tasks[i] for i in self.order)
                if t.phase_id == phase_id and (status is None or t.status == status)]

    def blockers(self, task_id: str) -> list[Edge]:
        return [e for e in self.inbound.get(task_id, ()) if e.edge_type == "blocks"]

    def is_unblocked(self, task_id: str) -> bool:
        # a blocks edge whose source is missing never clears
        for e in self.blockers(task_id):
            src = self.tasks.get(e.source_task_id)
            if src is None or src.status not in DONE_STATES: return False
        return True

    def ready_in_phase(self, phase_id: str) -> list[Task]:
        return [t for t in self.in_phase(phase_id, "pending") if self.is_unblocked(t.id)]

    def upstream_context(self, task_id: str) -> dict[str, str]:
        ctx = {}
        for e in self.inbound.get(task_id, ()):
            src = self.tasks.get(e.source_task_id)
            if src is not None and src.output_text: ctx[src.key] = src.output_text
        return ctx
