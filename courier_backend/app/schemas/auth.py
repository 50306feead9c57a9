"""
Authentication Pydantic schemas.

Defines request and response schemas for authentication endpoints.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional
from courier_backend.app.models.enums import UserRole


class UserRegister(BaseModel):
    """
    Schema for user registration.
    
    Used by POST /auth/register endpoint.
    Default role is CUSTOMER.
    """
    username: str = Field(..., min_length=3, max_length=20, description="Unique username")
    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., min_length=6, description="Password (min 6 characters)")
    role: UserRole = Field(default=UserRole.CUSTOMER, description="User role (defaults to customer)")
    phone: Optional[str] = Field(default=None, max_length=30, description="Contact phone")
    
    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value):
        return value.lower()


class UserLogin(BaseModel):
    """
    Schema for user login.
    
    Used by POST /auth/login endpoint.
    The identifier is matched against email first, then username.
    """
    identifier: str = Field(..., min_length=1, description="Email or username")
    password: str = Field(..., min_length=1, description="Password")


class Principal(BaseModel):
    """
    Authenticated identity attached to a request.
    
    Both authenticators (credentials and bearer token) produce this shape.
    """
    id: int
    username: str
    email: str
    role: UserRole
    phone: Optional[str] = None
    
    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    """
    Schema for JWT token response.
    
    Returned by successful login/register operations.
    """
    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    user_id: int = Field(..., description="User ID")
    username: str = Field(..., description="Username")
    email: str = Field(..., description="Email address")
    role: UserRole = Field(..., description="User role")


class MessageResponse(BaseModel):
    """Plain confirmation message."""
    message: str
