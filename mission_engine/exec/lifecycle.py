from ..errors import PlanLifecycleError
from ..models import Plan, PlanUpdate, utcnow

def next_plan_version(plans: list[Plan], mission_id: str) -> int:
    return max((p.version for p in plans if p.mission_id == mission_id), default=0) + 1

def approve_plan(plans: list[Plan], plan_id: str, approved_by: str, now: str|None = None) -> list[PlanUpdate]:
    """Approve ``plan_id`` and supersede whichever plan of the same mission held approval."""
    target = next((p for p in plans if p.id == plan_id), None)
    if target is None: raise PlanLifecycleError(f"unknown plan {plan_id!r}")
    if target.status in ("superseded", "cancelled"):
        raise PlanLifecycleError(f"plan {plan_id!r} is {target.status} and cannot be approved")
    ts = now or utcnow()
    updates = [PlanUpdate(target.id, "approved", approved_by=approved_by, approved_at=ts)]
    for p in plans:
        if p.id != target.id and p.mission_id == target.mission_id and p.status == "approved":
            updates.append(PlanUpdate(p.id, "superseded"))
    return updates
