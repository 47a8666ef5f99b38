"""Cost-saving proposals: savings arithmetic and the review workflow."""

import enum
from typing import Iterable, Tuple

from .exceptions import LedgerStateError, ValidationError


class InnovationType(str, enum.Enum):
    NEW_PROJECT = "new_project"
    PRODUCT_IMPROVEMENT = "product_improvement"
    PROCESS_OPTIMIZATION = "process_optimization"


class CalculationType(str, enum.Enum):
    PER_UNIT = "per_unit"
    RECURRING_MONTHLY = "recurring_monthly"
    ONE_TIME = "one_time"


class InnovationStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    IMPLEMENTED = "IMPLEMENTED"


# Review flow offered to managers
ALLOWED_TRANSITIONS = {
    InnovationStatus.PENDING: {InnovationStatus.APPROVED, InnovationStatus.REJECTED},
    InnovationStatus.APPROVED: {InnovationStatus.IMPLEMENTED},
    InnovationStatus.REJECTED: set(),
    InnovationStatus.IMPLEMENTED: set(),
}

COUNTED_STATUSES = {InnovationStatus.APPROVED, InnovationStatus.IMPLEMENTED}


def annual_savings(calculation_type: CalculationType, unit_savings: float, quantity: float) -> Tuple[float, float]:
    """
    Returns (quantity, total_annual_savings).

    One-time savings are taken as-is with quantity 1; per-unit and monthly
    savings are multiplied by units per year or active months per year.
    """
    if unit_savings < 0 or quantity < 0:
        raise ValidationError("Savings and quantity cannot be negative", field="unit_savings")
    if calculation_type == CalculationType.ONE_TIME:
        return 1, unit_savings
    return quantity, unit_savings * quantity


def check_transition(current: str, target: InnovationStatus):
    current = InnovationStatus(current)
    if target not in ALLOWED_TRANSITIONS[current]:
        raise LedgerStateError(f"Cannot move innovation from {current.value} to {target.value}")


def savings_totals(innovations: Iterable) -> dict:
    """Sum of annual savings over approved and implemented proposals only."""
    savings = 0.0
    count = 0
    for innovation in innovations:
        if InnovationStatus(innovation.status) in COUNTED_STATUSES:
            savings += innovation.total_annual_savings or 0
            count += 1
    return {"savings": savings, "count": count}
