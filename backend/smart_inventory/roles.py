# Overview: Closed role enumeration and the operation -> allowed roles table.

from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Server-side roles. Stored and signed as their string value."""
    ADMIN = "admin"
    MANAGER = "manager"
    EMPLOYEE = "employee"

    @classmethod
    def parse(cls, value) -> "Role":
        """Resolve a raw string (case-insensitive) to a Role; raises ValueError."""
        if isinstance(value, Role):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Unknown role: {value!r}")
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"Unknown role: {value!r}") from None


DEFAULT_ROLE = Role.EMPLOYEE

ALL_ROLES = frozenset(Role)


class Operation:
    """Gate-checked operations."""
    VIEW_INVENTORY = "VIEW_INVENTORY"
    CREATE_INVENTORY = "CREATE_INVENTORY"
    UPDATE_INVENTORY = "UPDATE_INVENTORY"
    DELETE_INVENTORY = "DELETE_INVENTORY"
    CREATE_SALE = "CREATE_SALE"
    VIEW_SALES = "VIEW_SALES"
    VIEW_STATISTICS = "VIEW_STATISTICS"
    ASSIGN_ROLE = "ASSIGN_ROLE"


OPERATION_ROLES: dict[str, frozenset[Role]] = {
    Operation.VIEW_INVENTORY: ALL_ROLES,
    Operation.CREATE_INVENTORY: frozenset({Role.ADMIN, Role.MANAGER}),
    Operation.UPDATE_INVENTORY: frozenset({Role.ADMIN, Role.MANAGER}),
    Operation.DELETE_INVENTORY: frozenset({Role.ADMIN}),
    Operation.CREATE_SALE: ALL_ROLES,
    Operation.VIEW_SALES: ALL_ROLES,
    Operation.VIEW_STATISTICS: ALL_ROLES,
    Operation.ASSIGN_ROLE: frozenset({Role.ADMIN}),
}


def allowed_roles(operation: str) -> frozenset[Role]:
    """Roles allowed to perform an operation. Unknown operations allow nobody."""
    return OPERATION_ROLES.get(operation, frozenset())
