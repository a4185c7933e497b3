"""
Pydantic schemas package
"""

from .common import *
from .checklist import *
from .seating import *

__all__ = [
    "StandardResponse",
    "ErrorResponse",
    "ChecklistImportRow",
    "ValidationIssue",
    "ValidationWarning",
    "ImportValidation",
    "ImportPreview",
    "ImportResult",
    "COUPLE_MEMBER_IDS",
    "SeatAssignment",
    "ManualAssignmentRequest",
    "SeatingResult",
    "TableUpsert",
    "TablesUpsertRequest",
    "SeatingGroupSplit",
    "SplitFamilyRequest",
]
