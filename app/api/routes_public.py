"""
Public API routes - no authentication required
"""

from fastapi import APIRouter, Request
from fastapi.responses import Response

from app.services.checklist_export import ChecklistExportService
from app.utils.security import rate_limit_check, get_client_ip
from app.utils.responses import rate_limit_error

router = APIRouter()

@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "ok"}

@router.get("/template/checklist_template.xlsx")
async def download_checklist_template(request: Request):
    """Download the blank checklist import template"""
    if not rate_limit_check(get_client_ip(request)):
        rate_limit_error()

    template_bytes = ChecklistExportService.create_template()

    return Response(
        content=template_bytes,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": "attachment; filename=checklist_template.xlsx"}
    )
