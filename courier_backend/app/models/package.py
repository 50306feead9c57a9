"""
Package and package history database models.

A package embeds its sender/recipient contact details as columns and owns an
ordered, append-only list of history entries.
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from courier_backend.app.db.session import Base
from courier_backend.app.models.package_enums import PackageStatus


class Package(Base):
    """
    Shipment record tracked from pickup to delivery.
    
    `tracking_id` is the public identifier shared with customers;
    `id` is internal and never exposed by the public lookup.
    """
    __tablename__ = "packages"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    tracking_id = Column(String(40), unique=True, nullable=False, index=True)
    
    # Sender
    sender_name = Column(String(200), nullable=False)
    sender_address = Column(String(500), nullable=False)
    sender_phone = Column(String(30), nullable=False, index=True)
    sender_email = Column(String(255), nullable=True, index=True)
    
    # Recipient
    recipient_name = Column(String(200), nullable=False)
    recipient_address = Column(String(500), nullable=False)
    recipient_phone = Column(String(30), nullable=False, index=True)
    recipient_email = Column(String(255), nullable=True, index=True)
    
    pickup_address = Column(String(500), nullable=False)
    delivery_address = Column(String(500), nullable=False)
    
    status = Column(Enum(PackageStatus), default=PackageStatus.PENDING, nullable=False, index=True)
    assigned_courier_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    current_location = Column(String(500), nullable=False, default="Unknown Location")
    eta = Column(DateTime(timezone=True), nullable=True)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    assigned_courier = relationship("User", lazy="selectin")
    history = relationship(
        "PackageHistory",
        back_populates="package",
        order_by="PackageHistory.position",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )
    
    @property
    def sender_info(self) -> dict:
        return {
            "name": self.sender_name,
            "address": self.sender_address,
            "phone": self.sender_phone,
            "email": self.sender_email,
        }
    
    @property
    def recipient_info(self) -> dict:
        return {
            "name": self.recipient_name,
            "address": self.recipient_address,
            "phone": self.recipient_phone,
            "email": self.recipient_email,
        }
    
    def set_sender(self, info: dict) -> None:
        self.sender_name = info["name"]
        self.sender_address = info["address"]
        self.sender_phone = info["phone"]
        self.sender_email = info.get("email")
    
    def set_recipient(self, info: dict) -> None:
        self.recipient_name = info["name"]
        self.recipient_address = info["address"]
        self.recipient_phone = info["phone"]
        self.recipient_email = info.get("email")
    
    def __repr__(self):
        return f"<Package(id={self.id}, tracking_id='{self.tracking_id}', status='{self.status.value}')>"


class PackageHistory(Base):
    """
    One immutable audit record of a status or location change.
    
    `position` orders entries within a package; rows are only ever appended.
    """
    __tablename__ = "package_history"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    package_id = Column(Integer, ForeignKey("packages.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    status = Column(Enum(PackageStatus), nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    location = Column(String(500), nullable=True)
    description = Column(String(500), nullable=True)
    
    package = relationship("Package", back_populates="history")
    
    def __repr__(self):
        return f"<PackageHistory(package_id={self.package_id}, position={self.position}, status='{self.status.value}')>"
