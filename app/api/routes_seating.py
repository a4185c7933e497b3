"""
Admin seating routes - requires authentication
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.db import get_db
from app.schemas.seating import ManualAssignmentRequest, SplitFamilyRequest, TablesUpsertRequest
from app.services.seating_service import SeatingService
from app.utils.security import verify_admin_token
from app.utils.responses import success_response

router = APIRouter()

@router.get("/weddings/{wedding_id}/seating")
async def get_seating_plan(
    wedding_id: int,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    """Tables, their guests and the unassigned confirmed guests"""
    plan = SeatingService.get_seating_plan(db, wedding_id)
    return success_response(message="Seating plan retrieved", data=plan)

@router.post("/weddings/{wedding_id}/seating")
async def assign_seats(
    wedding_id: int,
    request: ManualAssignmentRequest,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    """Apply manual seat assignments"""
    updated = SeatingService.manual_assignment(db, wedding_id, request.assignments)
    return success_response(
        message=f"{updated} seating assignments saved",
        data={"updated_count": updated}
    )

@router.post("/weddings/{wedding_id}/seating/random")
async def random_seating(
    wedding_id: int,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    """Reseat all confirmed guests at random"""
    result = SeatingService.random_assignment(db, wedding_id)
    return success_response(
        message=f"{result.assigned_count} guests assigned, {result.unassigned_count} unassigned",
        data=result
    )

@router.post("/weddings/{wedding_id}/seating/tables")
async def update_tables(
    wedding_id: int,
    request: TablesUpsertRequest,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    """Create, update and delete tables"""
    tables = SeatingService.upsert_tables(db, wedding_id, request.tables, request.delete_ids)
    return success_response(
        message="Tables updated",
        data=[
            {"id": table.id, "number": table.number, "name": table.name, "capacity": table.capacity}
            for table in tables
        ]
    )

@router.post("/weddings/{wedding_id}/seating/split")
async def split_family(
    wedding_id: int,
    request: SplitFamilyRequest,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    """Split a family into named seating groups"""
    updated = SeatingService.split_family(db, wedding_id, request.family_id, request.groups)
    return success_response(
        message=f"{updated} guests regrouped",
        data={"updated_count": updated}
    )
