"""Plan repository factory.

Provides get_plan_repository() / set_plan_repository() so tests and other
deployments can read the plan from somewhere other than the Order aggregate.
"""

from scanning.plan.domain_adapter import DomainPlanRepository
from scanning.plan.port import PlanRepository

_current_repository: PlanRepository | None = None


def get_plan_repository() -> PlanRepository:
    """Return the active plan repository. Defaults to the domain-backed adapter."""
    global _current_repository
    if _current_repository is None:
        _current_repository = DomainPlanRepository()
    return _current_repository


def set_plan_repository(repository: PlanRepository) -> None:
    """Override the active plan repository (useful for tests)."""
    global _current_repository
    _current_repository = repository


def reset_plan_repository() -> None:
    """Reset to the default plan repository."""
    global _current_repository
    _current_repository = None
