"""
Excel export service for wedding checklists and planner templates
"""

import io
import logging
import re
from typing import Dict, List, Optional

import pandas as pd
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import NotFound, PreconditionFailed
from app.models import ChecklistSection, TaskAssignment, TaskStatus
from app.services.checklist_import import ChecklistImportService
from app.services.repositories import ChecklistRepo, WeddingRepo

logger = logging.getLogger(__name__)

ASSIGNMENT_LABELS = {
    TaskAssignment.WEDDING_PLANNER.value: 'Wedding Planner',
    TaskAssignment.COUPLE.value: 'Couple',
    TaskAssignment.OTHER.value: 'Other',
}
STATUS_LABELS = {
    TaskStatus.PENDING.value: 'Pending',
    TaskStatus.IN_PROGRESS.value: 'In Progress',
    TaskStatus.COMPLETED.value: 'Completed',
}

_HTML_TAG = re.compile(r"<[^>]*>")
_HTML_ENTITIES = {
    '&nbsp;': ' ', '&amp;': '&', '&lt;': '<', '&gt;': '>', '&quot;': '"', '&#39;': "'",
}


def strip_rich_text(html: Optional[str]) -> str:
    """Plain-text rendering of a rich-text description"""
    if not html:
        return ''
    text = _HTML_TAG.sub('', html)
    for entity, char in _HTML_ENTITIES.items():
        text = text.replace(entity, char)
    return re.sub(r"\s+", " ", text).strip()


class ChecklistExportService:
    """Service for generating checklist spreadsheets"""

    COLUMNS = ChecklistImportService.REQUIRED_COLUMNS

    @staticmethod
    def _to_excel(sheets: Dict[str, pd.DataFrame]) -> bytes:
        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
            for sheet_name, df in sheets.items():
                df.to_excel(writer, index=False, sheet_name=sheet_name)
        content = buffer.getvalue()

        if len(content) > settings.MAX_EXPORT_SIZE:
            raise PreconditionFailed(
                f"Generated file size ({len(content) / 1024 / 1024:.2f}MB) exceeds "
                f"{settings.MAX_EXPORT_SIZE // (1024 * 1024)}MB limit"
            )
        return content

    @staticmethod
    def _rows_for_sections(
        sections: List[ChecklistSection],
        include_completed: bool,
        relative_dates: bool
    ) -> List[Dict]:
        rows = []
        limit = settings.CHECKLIST_EXPORT_MAX_ROWS
        for section in sections:
            for task in section.tasks:
                if not include_completed and task.completed:
                    continue
                if len(rows) >= limit:
                    logger.warning(f"Checklist export limited to {limit} tasks")
                    return rows

                if relative_dates:
                    due_date = task.due_date_relative or ''
                else:
                    due_date = task.due_date.strftime('%Y-%m-%d') if task.due_date else ''

                rows.append({
                    'Section': section.name,
                    'Title': task.title,
                    'Description': strip_rich_text(task.description),
                    'Assigned To': ASSIGNMENT_LABELS.get(task.assigned_to, task.assigned_to),
                    'Due Date': due_date,
                    'Status': STATUS_LABELS.get(task.status, task.status),
                    'Completed': 'Yes' if task.completed else 'No',
                })
        return rows

    @staticmethod
    def create_template() -> bytes:
        """Blank import template with example rows and an instructions sheet"""
        df = pd.DataFrame(columns=ChecklistExportService.COLUMNS)

        # Sample rows for guidance
        sample_data = [
            ['Pre-Wedding', 'Book venue', 'Research and book wedding venue', 'Couple', 'WEDDING_DATE-180', 'Pending', 'No'],
            ['Pre-Wedding', 'Send invitations', 'Design and send wedding invitations', 'Wedding Planner', 'WEDDING_DATE-60', 'Pending', 'No'],
            ['Pre-Wedding', 'Confirm catering', 'Finalize menu and guest count with caterer', 'Couple', 'WEDDING_DATE-30', 'Pending', 'No'],
            ['Day Of', 'Setup ceremony', 'Setup chairs, decorations, and sound system', 'Wedding Planner', 'WEDDING_DATE', 'Pending', 'No'],
            ['Post-Wedding', 'Send thank you cards', 'Write and send thank you notes to all guests', 'Couple', 'WEDDING_DATE+14', 'Pending', 'No'],
        ]
        for row in sample_data:
            df.loc[len(df)] = row

        instructions = pd.DataFrame({'Wedding Checklist Import Template': [
            'Fill in the checklist tasks in the "Template" sheet',
            'Section: name of the checklist section (e.g. "Pre-Wedding", "Day Of")',
            'Title: brief title of the task (required)',
            'Description: detailed description of the task (optional)',
            'Assigned To: "Wedding Planner", "Couple" or "Other"',
            'Due Date: absolute (YYYY-MM-DD) or relative (WEDDING_DATE-90, WEDDING_DATE+7)',
            'Status: "Pending", "In Progress" or "Completed"',
            'Completed: "Yes" or "No"',
            'Remove the example rows before importing',
            f'Maximum {settings.CHECKLIST_IMPORT_MAX_ROWS} tasks per checklist',
        ]})

        return ChecklistExportService._to_excel({'Template': df, 'Instructions': instructions})

    @staticmethod
    def export_wedding_checklist(db: Session, wedding_id: int, include_completed: bool = True) -> bytes:
        """Export a wedding's checklist with absolute due dates"""
        WeddingRepo.require(db, wedding_id)
        sections = ChecklistRepo.list_sections(db, wedding_id)

        rows = ChecklistExportService._rows_for_sections(sections, include_completed, relative_dates=False)
        df = pd.DataFrame(rows, columns=ChecklistExportService.COLUMNS)
        return ChecklistExportService._to_excel({'Wedding Checklist': df})

    @staticmethod
    def export_template(db: Session, planner_id: int) -> bytes:
        """Export a planner's template keeping relative due dates"""
        template = ChecklistRepo.get_template(db, planner_id)
        if template is None:
            raise NotFound("Checklist template")

        rows = ChecklistExportService._rows_for_sections(
            list(template.sections), include_completed=True, relative_dates=True
        )
        df = pd.DataFrame(rows, columns=ChecklistExportService.COLUMNS)
        return ChecklistExportService._to_excel({'Checklist Template': df})

    @staticmethod
    def export_filename(db: Session, wedding_id: int) -> str:
        wedding = WeddingRepo.require(db, wedding_id)
        slug = re.sub(r"[^a-z0-9]+", "-", wedding.couple_names.lower()).strip('-')
        return f"wedding-checklist-{slug}.xlsx"
