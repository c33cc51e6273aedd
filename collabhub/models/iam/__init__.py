"""
IAM models: users, their organizations and researcher profiles.
"""

from .enums import AccountStatus, Role
from .users import User, UserPreferences
from .organizations import Agreement, Organization, ResearcherProfile
from .credentials import AcademicHistory, Certification

__all__ = [
    "AccountStatus",
    "Role",
    "User",
    "UserPreferences",
    "Organization",
    "ResearcherProfile",
    "Agreement",
    "AcademicHistory",
    "Certification",
]
