"""
Audit Log Database Model.

Records authentication events and every mutation of users and packages.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from courier_backend.app.db.session import Base


class AuditLog(Base):
    """
    Audit log entry.
    
    Events logged:
    - LOGIN_SUCCESS / LOGIN_FAILED / LOGOUT
    - USER_CREATED / USER_DELETED
    - PACKAGE_CREATED / PACKAGE_UPDATED / PACKAGE_DELETED
    """
    __tablename__ = "audit_logs"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    # Who performed the action (None for anonymous attempts)
    actor_id = Column(Integer, index=True, nullable=True)
    actor_username = Column(String(100), nullable=True)
    
    action = Column(String(100), nullable=False, index=True)
    
    # What the action was applied to ("user" / "package")
    target_type = Column(String(50), nullable=True)
    target_id = Column(String(100), index=True, nullable=True)
    
    meta_data = Column(JSON, nullable=True)
    ip_address = Column(String(50), nullable=True)
    
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    
    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', actor={self.actor_username}, target={self.target_type}:{self.target_id})>"
