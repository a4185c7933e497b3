"""
Checklist import service: parse an uploaded spreadsheet, validate its rows,
preview the merge and commit it against the wedding's checklist.
"""

import io
import logging
import re
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd
from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import InvalidArgument, MalformedInput
from app.models import ChecklistSection, ChecklistTask, TaskStatus
from app.schemas.checklist import (
    ChecklistImportRow,
    ImportPreview,
    ImportResult,
    ImportValidation,
    ValidationIssue,
    ValidationWarning,
)
from app.services.relative_dates import is_valid_relative_date, parse_absolute_date, to_absolute
from app.services.repositories import ChecklistRepo

logger = logging.getLogger(__name__)

_ABSOLUTE_DATE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
_ENUM_SEPARATORS = re.compile(r"[\s\-]+")


def task_key(section_name: str, title: str) -> str:
    """Case-insensitive (section, title) identity used for merging"""
    return f"{section_name.lower()}|||{title.lower()}"


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _cell_text(value: Any) -> str:
    if _is_blank(value):
        return ""
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _enum_text(value: Any) -> str:
    # "In Progress" / "wedding-planner" -> IN_PROGRESS / WEDDING_PLANNER
    return _ENUM_SEPARATORS.sub("_", _cell_text(value)).upper()


def _parse_completed(value: Any) -> bool:
    if pd.api.types.is_bool(value):
        return bool(value)
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    if _is_blank(value):
        return False
    if pd.api.types.is_number(value):
        return value != 0
    return False


class ChecklistImportService:
    """Service for importing checklists from Excel files"""

    REQUIRED_COLUMNS = [
        'Section', 'Title', 'Description', 'Assigned To', 'Due Date', 'Status', 'Completed'
    ]
    FIELDS = {
        'Section': 'section',
        'Title': 'title',
        'Description': 'description',
        'Assigned To': 'assigned_to',
        'Due Date': 'due_date',
        'Status': 'status',
        'Completed': 'completed',
    }

    # ------------------------------------------------------------------
    # Parse stage
    # ------------------------------------------------------------------

    @staticmethod
    def read_sheet(file_content: bytes, filename: Optional[str] = None) -> List[List[Any]]:
        """Decode the first sheet into a grid of literal cell values.

        Only cached cell values are read: formulas are never evaluated and
        macros never run.
        """
        try:
            if filename and filename.lower().endswith('.csv'):
                df = pd.read_csv(
                    io.BytesIO(file_content), header=None, dtype=object, keep_default_na=False
                )
            else:
                df = pd.read_excel(io.BytesIO(file_content), sheet_name=0, header=None, dtype=object)
        except pd.errors.EmptyDataError as e:
            raise MalformedInput("Excel sheet is empty") from e
        except Exception as e:
            raise MalformedInput(f"Unable to read spreadsheet: {e}") from e

        return df.values.tolist()

    @staticmethod
    def parse_rows(grid: Sequence[Sequence[Any]]) -> List[Dict[str, Any]]:
        """Map a decoded grid onto import rows, locating columns by header name"""
        if not grid:
            raise MalformedInput("Excel sheet is empty")

        header = [_cell_text(cell).lower() for cell in grid[0]]
        if not any(header):
            raise MalformedInput("Excel file missing header row")

        columns = {}
        for name in ChecklistImportService.REQUIRED_COLUMNS:
            if name.lower() not in header:
                raise MalformedInput(f"Missing required column: {name}")
            columns[ChecklistImportService.FIELDS[name]] = header.index(name.lower())

        rows = []
        for raw in grid[1:]:
            if all(_is_blank(cell) for cell in raw):
                continue

            def cell(field):
                index = columns[field]
                return raw[index] if index < len(raw) else None

            title = _cell_text(cell('title'))
            # A row without a title is a spacer, not an error
            if not title:
                continue

            rows.append({
                'section': _cell_text(cell('section')),
                'title': title,
                'description': _cell_text(cell('description')) or None,
                'assigned_to': _enum_text(cell('assigned_to')),
                'due_date': _cell_text(cell('due_date')),
                'status': _enum_text(cell('status')),
                'completed': _parse_completed(cell('completed')),
            })

        return rows

    @staticmethod
    def parse_checklist_excel(file_content: bytes, filename: Optional[str] = None) -> List[Dict[str, Any]]:
        grid = ChecklistImportService.read_sheet(file_content, filename)
        return ChecklistImportService.parse_rows(grid)

    # ------------------------------------------------------------------
    # Validate stage
    # ------------------------------------------------------------------

    @staticmethod
    def validate_import_data(rows: Sequence[Any], wedding_date) -> ImportValidation:
        """Validate parsed rows, dropping duplicates and reconciling status.

        Row numbers match the spreadsheet (header is row 1); batch-level
        problems are reported on row 0.
        """
        result = ImportValidation()

        if not isinstance(wedding_date, date):
            result.errors.append(ValidationIssue(
                row=0, field='Wedding Date', message='Invalid wedding date provided'
            ))
            return result

        if len(rows) == 0:
            result.errors.append(ValidationIssue(row=0, message='No tasks found in Excel file'))
            return result

        max_rows = settings.CHECKLIST_IMPORT_MAX_ROWS
        if len(rows) > max_rows:
            result.errors.append(ValidationIssue(
                row=0, message=f'Too many tasks ({len(rows)}). Maximum allowed is {max_rows}.'
            ))
            return result

        seen = set()
        for index, raw in enumerate(rows):
            row_num = index + 2
            data = raw.model_dump() if isinstance(raw, BaseModel) else dict(raw)

            try:
                row = ChecklistImportRow.model_validate(data)
            except ValidationError as exc:
                for err in exc.errors():
                    field = str(err['loc'][0]) if err['loc'] else None
                    result.errors.append(ValidationIssue(
                        row=row_num,
                        field=field,
                        message=err['msg'],
                        value=data.get(field) if field else None,
                    ))
                continue

            due_date = row.due_date.strip()
            is_relative = is_valid_relative_date(due_date)
            is_absolute = bool(_ABSOLUTE_DATE.fullmatch(due_date))

            if not is_relative and not is_absolute:
                result.errors.append(ValidationIssue(
                    row=row_num,
                    field='Due Date',
                    message=(
                        f'Invalid due date format: "{due_date}". Must be either relative '
                        '(WEDDING_DATE-90) or absolute (YYYY-MM-DD)'
                    ),
                    value=due_date,
                ))
                continue

            if is_absolute and parse_absolute_date(due_date) is None:
                result.errors.append(ValidationIssue(
                    row=row_num, field='Due Date', message=f'Invalid date: "{due_date}"', value=due_date
                ))
                continue

            if is_relative:
                try:
                    to_absolute(due_date, wedding_date)
                except InvalidArgument as e:
                    result.errors.append(ValidationIssue(
                        row=row_num, field='Due Date', message=str(e), value=due_date
                    ))
                    continue

            row.due_date = due_date

            key = task_key(row.section, row.title)
            if key in seen:
                result.warnings.append(ValidationWarning(
                    row=row_num,
                    message=(
                        f'Duplicate task: "{row.title}" in section "{row.section}". '
                        'Only the first occurrence will be processed.'
                    ),
                ))
                continue
            seen.add(key)

            if row.completed and row.status != TaskStatus.COMPLETED:
                result.warnings.append(ValidationWarning(
                    row=row_num,
                    message=(
                        f'Task is marked as completed but status is "{row.status.value}". '
                        'Status will be set to COMPLETED.'
                    ),
                ))
                row.status = TaskStatus.COMPLETED

            if row.status == TaskStatus.COMPLETED and not row.completed:
                result.warnings.append(ValidationWarning(
                    row=row_num,
                    message='Task status is COMPLETED but completed checkbox is false. Completed will be set to true.',
                ))
                row.completed = True

            result.validated_rows.append(row)

        return result

    # ------------------------------------------------------------------
    # Preview stage
    # ------------------------------------------------------------------

    @staticmethod
    def preview_import(
        db: Session,
        wedding_id: int,
        rows: Sequence[ChecklistImportRow],
        warnings: Optional[List[ValidationWarning]] = None
    ) -> ImportPreview:
        """Count how many rows would create vs update tasks. Read-only."""
        existing = set()
        for section in ChecklistRepo.list_sections(db, wedding_id):
            for task in section.tasks:
                if task.template_id is None:
                    existing.add(task_key(section.name, task.title))

        # Orphaned tasks have no section name
        for task in ChecklistRepo.list_tasks(db, wedding_id):
            if task.section_id is None:
                existing.add(task_key("", task.title))

        new_tasks = 0
        updated_tasks = 0
        sections = set()
        for row in rows:
            sections.add(row.section)
            if task_key(row.section, row.title) in existing:
                updated_tasks += 1
            else:
                new_tasks += 1

        return ImportPreview(
            new_tasks=new_tasks,
            updated_tasks=updated_tasks,
            sections=sorted(sections),
            rows=list(rows),
            warnings=list(warnings or []),
        )

    # ------------------------------------------------------------------
    # Commit stage
    # ------------------------------------------------------------------

    @staticmethod
    def resolve_due_date(due_date: Optional[str], wedding_date) -> Optional[datetime]:
        """Turn a relative or YYYY-MM-DD due date into an absolute datetime"""
        if not due_date:
            return None

        if is_valid_relative_date(due_date):
            resolved = to_absolute(due_date, wedding_date)
        else:
            resolved = parse_absolute_date(due_date)
            if resolved is None:
                raise MalformedInput(f"Invalid due date: {due_date}")

        if not isinstance(resolved, datetime):
            resolved = datetime(resolved.year, resolved.month, resolved.day)
        return resolved

    @staticmethod
    def import_checklist(
        db: Session,
        wedding_id: int,
        rows: Sequence[ChecklistImportRow],
        wedding_date
    ) -> ImportResult:
        """Merge validated rows into the wedding checklist.

        The batch runs in one transaction with a savepoint per row, so a
        failing row is reported and skipped while the others still commit.
        Tasks are matched on (section, lowercased title).
        """
        tasks_created = 0
        tasks_updated = 0
        errors: List[ValidationIssue] = []
        warnings: List[ValidationWarning] = []

        try:
            section_map = ChecklistRepo.sections_by_name(db, wedding_id)
            task_map: Dict[Tuple[int, str], ChecklistTask] = {}
            for section in section_map.values():
                for task in section.tasks:
                    if task.template_id is None:
                        task_map[(section.id, task.title.lower())] = task

            # Both counters are seeded once for the whole batch
            next_section_order = ChecklistRepo.max_section_order(db, wedding_id) + 1
            next_task_order = ChecklistRepo.max_task_order(db, wedding_id) + 1

            for index, row in enumerate(rows):
                row_num = index + 2
                new_section = False
                created = False

                try:
                    with db.begin_nested():
                        section = section_map.get(row.section.lower())
                        if section is None:
                            section = ChecklistSection(
                                wedding_id=wedding_id,
                                template_id=None,
                                name=row.section,
                                order=next_section_order
                            )
                            db.add(section)
                            db.flush()
                            new_section = True

                        due_date = ChecklistImportService.resolve_due_date(row.due_date, wedding_date)
                        completed = row.completed or row.status == TaskStatus.COMPLETED
                        key = (section.id, row.title.lower())
                        task = task_map.get(key)

                        if task is not None:
                            if not completed:
                                completed_at = None
                            elif task.completed and task.completed_at:
                                completed_at = task.completed_at
                            else:
                                completed_at = datetime.utcnow()

                            task.description = row.description
                            task.assigned_to = row.assigned_to.value
                            task.due_date = due_date
                            task.status = row.status.value
                            task.completed = completed
                            task.completed_at = completed_at
                        else:
                            task = ChecklistTask(
                                wedding_id=wedding_id,
                                section_id=section.id,
                                template_id=None,
                                title=row.title,
                                description=row.description,
                                assigned_to=row.assigned_to.value,
                                due_date=due_date,
                                status=row.status.value,
                                completed=completed,
                                completed_at=datetime.utcnow() if completed else None,
                                order=next_task_order
                            )
                            db.add(task)
                            created = True
                        db.flush()
                except Exception as e:
                    logger.warning(f"Checklist import row {row_num} failed for wedding {wedding_id}: {e}")
                    errors.append(ValidationIssue(row=row_num, message=str(e) or 'Failed to import task'))
                    continue

                if new_section:
                    section_map[row.section.lower()] = section
                    next_section_order += 1
                if created:
                    task_map[key] = task
                    next_task_order += 1
                    tasks_created += 1
                else:
                    tasks_updated += 1

            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception(f"Checklist import failed for wedding {wedding_id}")
            return ImportResult(
                success=False,
                tasks_created=0,
                tasks_updated=0,
                errors=[ValidationIssue(row=0, message=str(e))],
                warnings=[],
            )

        logger.info(
            f"Checklist import for wedding {wedding_id}: "
            f"{tasks_created} created, {tasks_updated} updated, {len(errors)} errors"
        )
        return ImportResult(
            success=len(errors) == 0,
            tasks_created=tasks_created,
            tasks_updated=tasks_updated,
            errors=errors,
            warnings=warnings,
        )
