"""
Database models package
"""

from .wedding import Wedding
from .table import Table
from .family import Family, FamilyMember
from .checklist import (
    ChecklistTemplate,
    ChecklistSection,
    ChecklistTask,
    TaskAssignment,
    TaskStatus,
)

__all__ = [
    "Wedding",
    "Table",
    "Family",
    "FamilyMember",
    "ChecklistTemplate",
    "ChecklistSection",
    "ChecklistTask",
    "TaskAssignment",
    "TaskStatus",
]
