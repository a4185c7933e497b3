"""
Checklist section maintenance
"""

import logging

from sqlalchemy.orm import Session

from app.core.exceptions import NotFound
from app.models import ChecklistSection
from app.services.repositories import ChecklistRepo

logger = logging.getLogger(__name__)


class ChecklistSectionService:

    @staticmethod
    def delete_section(db: Session, wedding_id: int, section_id: int) -> None:
        """Delete a section with its tasks and compact the remaining orders to 1..n"""
        section = db.query(ChecklistSection).filter(
            ChecklistSection.id == section_id,
            ChecklistSection.wedding_id == wedding_id,
            ChecklistSection.template_id.is_(None)
        ).first()
        if section is None:
            raise NotFound("Section")

        db.delete(section)
        db.flush()

        for position, remaining in enumerate(ChecklistRepo.list_sections(db, wedding_id), start=1):
            remaining.order = position

        db.commit()
        logger.info(f"Deleted checklist section {section_id} of wedding {wedding_id}")
