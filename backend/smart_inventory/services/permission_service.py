# Overview: Role gate; checks a resolved Identity against the static operation table.

from __future__ import annotations

from ..roles import OPERATION_ROLES, allowed_roles
from .token_service import Identity


class PermissionDeniedError(Exception):
    """Raised when the caller's role may not perform an operation."""

    def __init__(self, operation: str, role: str):
        super().__init__(f"Role '{role}' may not perform {operation}")
        self.operation = operation
        self.role = role


def is_allowed(identity: Identity, operation: str) -> bool:
    return identity.role in allowed_roles(operation)


def authorize(identity: Identity, operation: str) -> None:
    """
    Fail closed: unknown operations are denied to every role.

    Raises PermissionDeniedError.
    """
    if not is_allowed(identity, operation):
        raise PermissionDeniedError(operation, identity.role.value)


def allowed_operations(identity: Identity) -> list[str]:
    return sorted(op for op, roles in OPERATION_ROLES.items() if identity.role in roles)
