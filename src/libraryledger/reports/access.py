"""Access policy for reporting reads.

A librarian may read everything; a student may only read book records.
"""

from dataclasses import dataclass, field
from enum import Enum

from ..ledger.errors import LedgerError


class Role(str, Enum):
    """Caller role at the reporting boundary."""

    LIBRARIAN = "librarian"
    STUDENT = "student"


class Resource(str, Enum):
    """Record family a report reads."""

    BOOKS = "books"
    MEMBERS = "members"
    LOANS = "loans"


class AccessDenied(LedgerError):
    """Role may not read the requested records."""

    def __init__(self, role: Role, resource: Resource):
        self.role = role
        self.resource = resource
        super().__init__(f"Role '{role.value}' may not read {resource.value}")


def _default_grants() -> dict[Role, frozenset[Resource]]:
    return {
        Role.LIBRARIAN: frozenset(Resource),
        Role.STUDENT: frozenset({Resource.BOOKS}),
    }


@dataclass(frozen=True)
class AccessPolicy:
    """Maps each role to the resources it may read."""

    grants: dict[Role, frozenset[Resource]] = field(default_factory=_default_grants)

    def allows(self, role: Role, resource: Resource) -> bool:
        return resource in self.grants.get(role, frozenset())

    def require(self, role: Role, *resources: Resource) -> None:
        """Raise AccessDenied unless the role may read every resource."""
        for resource in resources:
            if not self.allows(role, resource):
                raise AccessDenied(role, resource)
