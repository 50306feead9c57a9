"""
Package Pydantic schemas.

Defines request and response models for package management and the
public tracking lookup.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from datetime import datetime
from typing import Optional, List
from courier_backend.app.models.package_enums import PackageStatus


class ContactInfo(BaseModel):
    """Sender or recipient contact details."""
    name: str = Field(..., min_length=1, max_length=200)
    address: str = Field(..., min_length=1, max_length=500)
    phone: str = Field(..., min_length=1, max_length=30)
    email: Optional[EmailStr] = None
    
    class Config:
        str_strip_whitespace = True
    
    @field_validator("email", mode="before")
    @classmethod
    def blank_email_is_absent(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value
    
    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value):
        return value.lower() if value is not None else value


class PackageCreate(BaseModel):
    """Schema for creating a new package."""
    sender_info: ContactInfo
    recipient_info: ContactInfo
    tracking_id: Optional[str] = Field(None, min_length=1, max_length=40, description="Generated when omitted")
    status: Optional[PackageStatus] = None
    current_location: Optional[str] = Field(None, min_length=1, max_length=500)
    eta: Optional[datetime] = None
    assigned_courier: Optional[int] = Field(None, description="Courier user ID (admin only)")
    
    class Config:
        str_strip_whitespace = True
    
    @field_validator("tracking_id")
    @classmethod
    def tracking_id_not_numeric(cls, value):
        # Purely numeric keys are read as internal IDs by the lookup endpoint
        if value is not None and value.isdigit():
            raise ValueError("tracking_id must not be purely numeric")
        return value


class PackageUpdate(BaseModel):
    """
    Schema for updating an existing package.
    
    Only the fields present in the request are applied; which of them a
    caller may send depends on their role.
    """
    status: Optional[PackageStatus] = None
    current_location: Optional[str] = Field(None, min_length=1, max_length=500)
    eta: Optional[datetime] = None
    assigned_courier: Optional[int] = None
    sender_info: Optional[ContactInfo] = None
    recipient_info: Optional[ContactInfo] = None
    pickup_address: Optional[str] = Field(None, min_length=1, max_length=500)
    delivery_address: Optional[str] = Field(None, min_length=1, max_length=500)
    
    class Config:
        extra = "forbid"
        str_strip_whitespace = True
    
    @model_validator(mode="after")
    def required_fields_not_null(self):
        nullable = {"eta", "assigned_courier"}
        for field in self.model_fields_set - nullable:
            if getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self


class CourierSummary(BaseModel):
    """Assigned courier as shown to authenticated callers."""
    id: int
    username: str
    email: str
    
    class Config:
        from_attributes = True


class HistoryEntryResponse(BaseModel):
    """Schema for one history entry."""
    status: PackageStatus
    timestamp: datetime
    location: Optional[str] = None
    description: Optional[str] = None
    
    class Config:
        from_attributes = True


class PackageResponse(BaseModel):
    """Schema for package response."""
    id: int
    tracking_id: str
    sender_info: ContactInfo
    recipient_info: ContactInfo
    pickup_address: str
    delivery_address: str
    status: PackageStatus
    assigned_courier: Optional[CourierSummary] = None
    current_location: str
    eta: Optional[datetime] = None
    history: List[HistoryEntryResponse]
    created_at: datetime
    updated_at: datetime
    
    class Config:
        from_attributes = True


class PackageListResponse(BaseModel):
    """Schema for paginated package list."""
    packages: List[PackageResponse]
    total: int
    page: int
    page_size: int


class PublicCourier(BaseModel):
    """Assigned courier as shown on the public tracking page."""
    username: str
    
    class Config:
        from_attributes = True


class PublicPackageResponse(BaseModel):
    """
    Redacted tracking projection.
    
    Carries no contact details, internal IDs or courier email.
    """
    tracking_id: str
    status: PackageStatus
    current_location: str
    eta: Optional[datetime] = None
    history: List[HistoryEntryResponse]
    assigned_courier: Optional[PublicCourier] = None
    
    class Config:
        from_attributes = True
