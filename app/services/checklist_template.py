"""
Planner checklist templates: saving imported rows and copying into weddings
"""

import logging
from datetime import datetime
from typing import Dict, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import InvalidArgument, PersistenceFailure, PreconditionFailed
from app.models import ChecklistSection, ChecklistTask, ChecklistTemplate, TaskStatus
from app.schemas.checklist import ChecklistImportRow
from app.services.relative_dates import (
    format_offset,
    parse_absolute_date,
    parse_relative_date,
    to_absolute,
    to_relative,
)
from app.services.repositories import ChecklistRepo, WeddingRepo

logger = logging.getLogger(__name__)


def template_due_date(due_date: str, wedding_date) -> str:
    """Canonical relative form of a validated due date"""
    relative = parse_relative_date(due_date)
    if relative is not None:
        return format_offset(relative.offset)

    absolute = parse_absolute_date(due_date)
    if absolute is None:
        raise InvalidArgument(f"Invalid due date: {due_date}")
    return to_relative(absolute, wedding_date)


class ChecklistTemplateService:
    """Service for applying planner templates to weddings"""

    @staticmethod
    def copy_template_to_wedding(db: Session, planner_id: int, wedding_id: int) -> int:
        """Copy the planner's template into an empty wedding checklist.

        Relative due dates are resolved against the wedding date. Returns
        the number of tasks created; 0 when there is no template or the
        wedding already has tasks.
        """
        template = ChecklistRepo.get_template(db, planner_id)
        if template is None:
            return 0

        wedding = WeddingRepo.require(db, wedding_id)
        if wedding.planner_id != planner_id:
            raise PreconditionFailed("Wedding does not belong to this planner")
        if not isinstance(wedding.wedding_date, datetime):
            raise PreconditionFailed("Wedding must have a valid wedding_date")

        if ChecklistRepo.count_tasks(db, wedding_id) > 0:
            return 0

        task_count = 0
        try:
            for template_section in template.sections:
                section = ChecklistSection(
                    wedding_id=wedding_id,
                    template_id=None,
                    name=template_section.name,
                    order=template_section.order
                )
                db.add(section)
                db.flush()

                for template_task in template_section.tasks:
                    due_date = None
                    if template_task.due_date_relative:
                        try:
                            due_date = to_absolute(template_task.due_date_relative, wedding.wedding_date)
                        except InvalidArgument as e:
                            logger.warning(
                                f"Skipping due date \"{template_task.due_date_relative}\" "
                                f"for task \"{template_task.title}\": {e}"
                            )

                    db.add(ChecklistTask(
                        section_id=section.id,
                        wedding_id=wedding_id,
                        template_id=None,
                        title=template_task.title,
                        description=template_task.description,
                        assigned_to=template_task.assigned_to,
                        due_date=due_date,
                        due_date_relative=None,
                        status=TaskStatus.PENDING.value,
                        completed=False,
                        order=template_task.order
                    ))
                    task_count += 1

            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception(f"Copying template of planner {planner_id} to wedding {wedding_id} failed")
            raise PersistenceFailure(str(e)) from e

        logger.info(f"Copied {task_count} template tasks to wedding {wedding_id}")
        return task_count

    @staticmethod
    def save_template(
        db: Session,
        planner_id: int,
        rows: Sequence[ChecklistImportRow],
        wedding_date
    ) -> ChecklistTemplate:
        """Replace the planner's template with validated import rows.

        Due dates are stored relative to the wedding; absolute dates are
        converted against ``wedding_date``. Sections keep their first-seen
        order.
        """
        if not rows:
            raise PreconditionFailed("Template must have at least one section")

        template = ChecklistRepo.get_template(db, planner_id)
        try:
            if template is None:
                template = ChecklistTemplate(planner_id=planner_id)
                db.add(template)
            else:
                for section in list(template.sections):
                    db.delete(section)
            db.flush()

            sections: Dict[str, ChecklistSection] = {}
            for task_order, row in enumerate(rows, start=1):
                section = sections.get(row.section.lower())
                if section is None:
                    section = ChecklistSection(
                        template_id=template.id,
                        wedding_id=None,
                        name=row.section,
                        order=len(sections) + 1
                    )
                    db.add(section)
                    db.flush()
                    sections[row.section.lower()] = section

                db.add(ChecklistTask(
                    section_id=section.id,
                    template_id=template.id,
                    wedding_id=None,
                    title=row.title,
                    description=row.description,
                    assigned_to=row.assigned_to.value,
                    due_date=None,
                    due_date_relative=template_due_date(row.due_date, wedding_date),
                    status=TaskStatus.PENDING.value,
                    completed=False,
                    order=task_order
                ))

            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception(f"Saving checklist template of planner {planner_id} failed")
            raise PersistenceFailure(str(e)) from e

        db.refresh(template)
        logger.info(
            f"Saved checklist template of planner {planner_id}: "
            f"{len(sections)} sections, {len(rows)} tasks"
        )
        return template
