from .iam import (
    AccountStatus as AccountStatus,
    Role as Role,
    User as User,
    UserPreferences as UserPreferences,
    Organization as Organization,
    ResearcherProfile as ResearcherProfile,
    Agreement as Agreement,
    AcademicHistory as AcademicHistory,
    Certification as Certification,
)

from .enums import (
    ProjectStatus as ProjectStatus,
    ReviewAction as ReviewAction,
    MilestoneStatus as MilestoneStatus,
)
from .projects import Project as Project, ProjectReview as ProjectReview
from .milestones import Milestone as Milestone
from .audit import AuditLog as AuditLog
