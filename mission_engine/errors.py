class IdMapError(ValueError):
    """Placeholder→real id mapping is not injective, or a placeholder was never bound."""

class PlanLifecycleError(ValueError):
    pass

class PhaseApprovalError(ValueError):
    pass
