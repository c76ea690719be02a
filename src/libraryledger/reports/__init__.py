"""Reporting module.

Read-only projections over the ledger for reporting collaborators:
- Overdue loans and outstanding fines
- Most borrowed titles and books on loan
- Member loan history, late returners and rankings
- Fine totals per member and per month
"""

from .access import AccessDenied, AccessPolicy, Resource, Role
from .manager import ReportManager
from .schemas import (
    BookAvailability,
    BorrowCount,
    FineTotals,
    LateReturner,
    MemberFineTotal,
    MemberHistory,
    MemberRanking,
    MonthlyFine,
    OverdueLoan,
)

__all__ = [
    "ReportManager",
    "AccessDenied",
    "AccessPolicy",
    "Resource",
    "Role",
    "BookAvailability",
    "BorrowCount",
    "FineTotals",
    "LateReturner",
    "MemberFineTotal",
    "MemberHistory",
    "MemberRanking",
    "MonthlyFine",
    "OverdueLoan",
]
