from ..models import Phase, Task, CircuitBreakerConfig, CircuitBreakerResult

def evaluate_circuit_breaker(phases: list[Phase], tasks: list[Task], config: CircuitBreakerConfig) -> CircuitBreakerResult:
    """Decide whether failures in the active phase should halt the phase or the mission.

    Once ``max_phase_failures`` is reached the policy is applied as configured.
    Below it, ``stop_mission`` still fires on the first failure while
    ``stop_phase`` waits for the threshold; ``continue`` never stops.
    """
    active = next((p for p in phases if p.status == "active"), None)
    if active is None: return CircuitBreakerResult()
    failed = [t for t in tasks if t.phase_id == active.id and t.status == "failed"]
    if not failed: return CircuitBreakerResult()
    policy, limit = config.on_task_failure, config.max_phase_failures
    if len(failed) >= limit and policy in ("stop_mission", "stop_phase"):
        return CircuitBreakerResult(policy, f'{len(failed)} task(s) failed in phase "{active.title}" '
                                            f"(max: {limit}). Policy: {policy}.")
    # TODO: confirm with product that stop_mission should fire below the threshold
    if policy == "stop_mission":
        return CircuitBreakerResult("stop_mission", f'Task "{failed[0].key}" failed. Policy: stop_mission.')
    return CircuitBreakerResult()
