"""Fine policy for overdue loans."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from ..config import get_config

CENTS = Decimal("0.01")


@dataclass(frozen=True)
class FinePolicy:
    """Flat fine per overdue day.

    Deterministic and side-effect free: the same dates always give the same
    fine, and a return on or before the due date is never fined.
    """

    unit_fine: Decimal = Decimal("5.00")

    def __post_init__(self) -> None:
        if self.unit_fine < 0:
            raise ValueError("unit_fine must be non-negative")

    @classmethod
    def from_config(cls) -> "FinePolicy":
        return cls(unit_fine=get_config().fine_per_day)

    @staticmethod
    def overdue_days(due_date: date, effective_date: date) -> int:
        """Days past due, 0 if not overdue."""
        return max(0, (effective_date - due_date).days)

    def fine(self, due_date: date, effective_date: Optional[date] = None) -> Decimal:
        """Compute the fine accrued by ``effective_date``.

        Args:
            due_date: Loan due date
            effective_date: Return date, or today for an outstanding loan

        Returns:
            Fine amount, rounded to cents
        """
        effective = effective_date or date.today()
        days = self.overdue_days(due_date, effective)
        return (self.unit_fine * days).quantize(CENTS)
