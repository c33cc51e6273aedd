"""
Enumerations for the IAM system.
"""

from enum import Enum


class Role(str, Enum):
    """Role fixed on a user at registration"""

    RESEARCHER = "researcher"
    NONPROFIT = "nonprofit"
    ADMIN = "admin"


class AccountStatus(str, Enum):
    """Stored account status; soft deletion is tracked separately via deleted_at"""

    ACTIVE = "active"
    PENDING = "pending"
    SUSPENDED = "suspended"
