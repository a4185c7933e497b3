"""
Seating-related Pydantic schemas
"""

from typing import List, Optional, Union
from pydantic import BaseModel, Field

# Wire identifiers for the two couple pseudo-guests
COUPLE_MEMBER_IDS = ("couple-member-1", "couple-member-2")

class SeatAssignment(BaseModel):
    """Explicit seat for one guest; table_id None unseats the guest"""
    guest_id: Union[int, str]
    table_id: Optional[int] = None

class ManualAssignmentRequest(BaseModel):
    assignments: List[SeatAssignment]

class SeatingResult(BaseModel):
    assigned_count: int
    unassigned_count: int

class TableUpsert(BaseModel):
    """Table to create (no id) or update"""
    id: Optional[int] = None
    number: int = Field(gt=0)
    name: Optional[str] = None
    capacity: int = Field(gt=0)

class TablesUpsertRequest(BaseModel):
    tables: List[TableUpsert]
    delete_ids: List[int] = []

class SeatingGroupSplit(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    guest_ids: List[int]

class SplitFamilyRequest(BaseModel):
    family_id: int
    groups: List[SeatingGroupSplit]
