"""
Security guards for role-based and ownership-based access control.

Provides the access gate applied to every protected route.
"""

from typing import Iterable, List, Optional
from fastapi import Depends
from courier_backend.app.core.dependencies import get_current_user
from courier_backend.app.core.exceptions import InsufficientPermissionsError
from courier_backend.app.models.enums import UserRole
from courier_backend.app.models.package import Package
from courier_backend.app.schemas.auth import Principal


def authorize(principal: Optional[Principal], allowed_roles: Iterable[UserRole]) -> Principal:
    """
    Access gate: pass the principal through if its role is allowed.
    
    Stateless and side-effect free; transport-independent.
    
    Raises:
        InsufficientPermissionsError: principal missing or role not allowed
    """
    allowed = list(allowed_roles)
    
    if principal is None:
        raise InsufficientPermissionsError("User role none is not authorized to access this route")
    
    if principal.role not in allowed:
        raise InsufficientPermissionsError(
            f"User role {principal.role.value} is not authorized to access this route",
            details={"allowed_roles": [r.value for r in allowed]}
        )
    
    return principal


def require_role(allowed_roles: List[UserRole]):
    """
    Dependency factory for role-based access control.
    
    Usage:
        @router.get("/users")
        async def list_users(current_user: Principal = Depends(require_role([UserRole.ADMIN]))):
            ...
    
    Args:
        allowed_roles: List of UserRole enums that are allowed to access the endpoint
        
    Returns:
        FastAPI dependency function that validates user role
    """
    async def role_checker(current_user: Principal = Depends(get_current_user)) -> Principal:
        return authorize(current_user, allowed_roles)
    
    return role_checker


require_admin = require_role([UserRole.ADMIN])


class OwnershipGuard:
    """
    Package visibility check for non-admin callers.
    
    A caller may see a package when they are its sender or recipient
    (matched by email or phone) or its assigned courier.
    """
    
    @staticmethod
    def can_view(principal: Principal, package: Package) -> bool:
        if principal.role == UserRole.ADMIN:
            return True
        
        if package.assigned_courier_id is not None and package.assigned_courier_id == principal.id:
            return True
        
        emails = {package.sender_email, package.recipient_email} - {None}
        if principal.email in emails:
            return True
        
        phones = {package.sender_phone, package.recipient_phone}
        return bool(principal.phone) and principal.phone in phones
    
    def enforce(self, principal: Principal, package: Package) -> None:
        """
        Raises:
            InsufficientPermissionsError: caller may not view this package
        """
        if not self.can_view(principal, package):
            raise InsufficientPermissionsError("Not authorized to view this package")
