"""Book lending module.

Provides functionality for:
- Issuing copies to members
- Returning copies and settling fines
- Outstanding fine lookups
- Overdue status sweeps
"""

from .fines import FinePolicy
from .manager import LendingService
from .schemas import LendingErrorKind, LendingResult

__all__ = [
    "LendingService",
    "FinePolicy",
    "LendingErrorKind",
    "LendingResult",
]
