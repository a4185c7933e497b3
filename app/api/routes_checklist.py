"""
Admin checklist routes - requires authentication
"""

from fastapi import APIRouter, Depends, UploadFile, File, Form, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from app.core.db import get_db
from app.services.checklist_export import ChecklistExportService
from app.services.checklist_import import ChecklistImportService
from app.services.checklist_sections import ChecklistSectionService
from app.services.checklist_template import ChecklistTemplateService
from app.services.relative_dates import parse_absolute_date
from app.services.repositories import WeddingRepo
from app.utils.security import verify_admin_token, read_upload
from app.utils.responses import success_response, error_response

router = APIRouter()

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

async def _validated_upload(wedding_id: int, file: UploadFile, db: Session):
    """Parse and validate an uploaded checklist against the wedding date"""
    wedding = WeddingRepo.require(db, wedding_id)
    content = await read_upload(file)

    rows = ChecklistImportService.parse_checklist_excel(content, file.filename)
    validation = ChecklistImportService.validate_import_data(rows, wedding.wedding_date)
    return wedding, validation

def _validation_failed(validation):
    return error_response(
        message=f"Validation failed with {len(validation.errors)} errors",
        error_code="validation_failed",
        details={"errors": validation.errors, "warnings": validation.warnings},
        status_code=422
    )

@router.post("/weddings/{wedding_id}/checklist/import/preview")
async def preview_checklist_import(
    wedding_id: int,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    """Show what an import would create and update, without writing"""
    wedding, validation = await _validated_upload(wedding_id, file, db)
    if validation.errors:
        return _validation_failed(validation)

    preview = ChecklistImportService.preview_import(
        db, wedding.id, validation.validated_rows, validation.warnings
    )
    return success_response(
        message=f"{preview.new_tasks} new tasks, {preview.updated_tasks} updated tasks",
        data=preview
    )

@router.post("/weddings/{wedding_id}/checklist/import")
async def import_checklist(
    wedding_id: int,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    """Import a checklist spreadsheet into the wedding"""
    wedding, validation = await _validated_upload(wedding_id, file, db)
    if validation.errors:
        return _validation_failed(validation)

    result = ChecklistImportService.import_checklist(
        db, wedding.id, validation.validated_rows, wedding.wedding_date
    )
    result.warnings = validation.warnings + result.warnings

    if result.success:
        message = f"Checklist imported. {result.tasks_created} created, {result.tasks_updated} updated."
    else:
        message = f"Checklist imported with {len(result.errors)} errors"
    return success_response(message=message, data=result)

@router.get("/weddings/{wedding_id}/checklist/export.xlsx")
async def export_checklist(
    wedding_id: int,
    include_completed: bool = Query(True),
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    """Export the wedding checklist to Excel"""
    excel_content = ChecklistExportService.export_wedding_checklist(db, wedding_id, include_completed)
    filename = ChecklistExportService.export_filename(db, wedding_id)

    return Response(
        content=excel_content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )

@router.get("/planners/{planner_id}/checklist-template.xlsx")
async def export_checklist_template(
    planner_id: int,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    """Export a planner's checklist template with relative due dates"""
    excel_content = ChecklistExportService.export_template(db, planner_id)

    return Response(
        content=excel_content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename=checklist-template-{planner_id}.xlsx"}
    )

@router.post("/weddings/{wedding_id}/checklist/copy-template")
async def copy_checklist_template(
    wedding_id: int,
    planner_id: int = Query(...),
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    """Copy the planner's template into an empty wedding checklist"""
    task_count = ChecklistTemplateService.copy_template_to_wedding(db, planner_id, wedding_id)
    return success_response(
        message=f"Copied {task_count} tasks from template",
        data={"tasks_created": task_count}
    )

@router.delete("/weddings/{wedding_id}/checklist/sections/{section_id}")
async def delete_checklist_section(
    wedding_id: int,
    section_id: int,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    """Delete a section and its tasks"""
    ChecklistSectionService.delete_section(db, wedding_id, section_id)
    return success_response(message="Section deleted")

@router.post("/planners/{planner_id}/checklist-template/import")
async def import_checklist_template(
    planner_id: int,
    file: UploadFile = File(...),
    wedding_date: str = Form(...),
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    """Replace the planner's template from a spreadsheet.

    ``wedding_date`` anchors absolute due dates so they can be stored
    relative to the wedding.
    """
    anchor = parse_absolute_date(wedding_date)
    if anchor is None:
        return error_response(
            message="wedding_date must be a YYYY-MM-DD date",
            error_code="invalid_wedding_date"
        )

    content = await read_upload(file)
    rows = ChecklistImportService.parse_checklist_excel(content, file.filename)
    validation = ChecklistImportService.validate_import_data(rows, anchor)
    if validation.errors:
        return _validation_failed(validation)

    template = ChecklistTemplateService.save_template(
        db, planner_id, validation.validated_rows, anchor
    )
    return success_response(
        message=f"Template saved with {len(validation.validated_rows)} tasks",
        data={
            "sections_created": len(template.sections),
            "tasks_created": len(validation.validated_rows),
            "warnings": validation.warnings
        }
    )
