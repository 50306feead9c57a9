"""
Per-role write permissions for package updates.

Every update is checked against an explicit whitelist before anything is
mutated, so a rejected request leaves the record untouched.
"""

from typing import Iterable, Optional
from courier_backend.app.core.exceptions import InsufficientPermissionsError
from courier_backend.app.models.enums import UserRole

ADMIN_WRITABLE_FIELDS = frozenset({
    "status",
    "current_location",
    "eta",
    "assigned_courier",
    "sender_info",
    "recipient_info",
    "pickup_address",
    "delivery_address",
})

COURIER_WRITABLE_FIELDS = frozenset({
    "status",
    "current_location",
    "eta",
    "assigned_courier",
})

ROLE_WRITABLE_FIELDS = {
    UserRole.ADMIN: ADMIN_WRITABLE_FIELDS,
    UserRole.COURIER: COURIER_WRITABLE_FIELDS,
    UserRole.CUSTOMER: frozenset(),
}


def writable_fields(role: UserRole) -> frozenset:
    return ROLE_WRITABLE_FIELDS.get(role, frozenset())


def ensure_fields_writable(role: UserRole, fields: Iterable[str]) -> None:
    """
    Reject the update if it touches any field outside the role's whitelist.
    
    Raises:
        InsufficientPermissionsError: listing the offending fields
    """
    requested = set(fields)
    if not requested:
        return
    
    allowed = writable_fields(role)
    if not allowed:
        raise InsufficientPermissionsError(f"Role {role.value} cannot update packages")
    
    forbidden = sorted(requested - allowed)
    if forbidden:
        raise InsufficientPermissionsError(
            f"Role {role.value} cannot update: {', '.join(forbidden)}",
            details={"forbidden_fields": forbidden}
        )


def resolve_courier_assignment(
    courier_id: int,
    current_assignee_id: Optional[int],
    requested_assignee_id: Optional[int],
) -> int:
    """
    Work out the assignee after a courier's request to set `assigned_courier`.
    
    A courier may only take an unassigned package for themselves. Asking for
    a package they already hold is a no-op.
    
    Returns:
        The courier's own ID (the resulting assignee)
        
    Raises:
        InsufficientPermissionsError: on reassignment to anyone else, or when
            the package already belongs to another courier
    """
    if requested_assignee_id != courier_id:
        raise InsufficientPermissionsError("Couriers can only assign packages to themselves")
    
    if current_assignee_id is not None and current_assignee_id != courier_id:
        raise InsufficientPermissionsError("Package is already assigned to another courier")
    
    return courier_id
