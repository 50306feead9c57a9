"""
User management schema definitions.

Pydantic schemas for user listing and admin actions.
"""

from pydantic import BaseModel
from datetime import datetime
from typing import Optional, List
from courier_backend.app.models.enums import UserRole


class UserResponse(BaseModel):
    """Schema for a user record (never includes the password hash)."""
    id: int
    username: str
    email: str
    role: UserRole
    phone: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    
    class Config:
        from_attributes = True


class UserListResponse(BaseModel):
    """Schema for list users response."""
    users: List[UserResponse]
    total: int
    page: int
    page_size: int
