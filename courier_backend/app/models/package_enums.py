"""
Package Status Enumeration.
"""

import enum


class PackageStatus(str, enum.Enum):
    """
    Package status enumeration.
    
    No transition table is enforced: any status may follow any other.
    DELIVERED, CANCELLED and RETURNED are terminal by convention only.
    """
    PENDING = "Pending"
    OUT_FOR_PICKUP = "Out for Pickup"
    PICKED_UP = "Picked Up"
    IN_TRANSIT = "In Transit"
    OUT_FOR_DELIVERY = "Out for Delivery"
    DELIVERED = "Delivered"
    ATTEMPTED_DELIVERY = "Attempted Delivery"
    CANCELLED = "Cancelled"
    RETURNED = "Returned"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({
    PackageStatus.DELIVERED,
    PackageStatus.CANCELLED,
    PackageStatus.RETURNED,
})
