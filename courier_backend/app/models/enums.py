"""
User roles enumeration.

Defines the role types for the courier tracking system.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.
    
    Roles:
        CUSTOMER: Sends or receives packages (default role)
        COURIER: Picks up and delivers packages assigned to them
        ADMIN: Manages users and every package
    """
    CUSTOMER = "customer"
    COURIER = "courier"
    ADMIN = "admin"
