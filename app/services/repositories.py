"""
Repository layer: the queries the checklist and seating services share.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.exceptions import NotFound
from app.models import (
    ChecklistSection,
    ChecklistTask,
    ChecklistTemplate,
    Family,
    FamilyMember,
    Table,
    Wedding,
)


# -------- Wedding repository --------

class WeddingRepo:
    @staticmethod
    def get_by_id(db: Session, wedding_id: int) -> Optional[Wedding]:
        return db.query(Wedding).filter(Wedding.id == wedding_id).first()

    @staticmethod
    def require(db: Session, wedding_id: int) -> Wedding:
        wedding = WeddingRepo.get_by_id(db, wedding_id)
        if wedding is None:
            raise NotFound("Wedding")
        return wedding


# -------- Checklist repository --------

class ChecklistRepo:
    """Wedding checklist rows only; template rows carry a template_id"""

    @staticmethod
    def list_sections(db: Session, wedding_id: int) -> List[ChecklistSection]:
        return db.query(ChecklistSection).filter(
            ChecklistSection.wedding_id == wedding_id,
            ChecklistSection.template_id.is_(None)
        ).order_by(ChecklistSection.order).all()

    @staticmethod
    def list_tasks(db: Session, wedding_id: int) -> List[ChecklistTask]:
        return db.query(ChecklistTask).filter(
            ChecklistTask.wedding_id == wedding_id,
            ChecklistTask.template_id.is_(None)
        ).order_by(ChecklistTask.order).all()

    @staticmethod
    def count_tasks(db: Session, wedding_id: int) -> int:
        return db.query(func.count(ChecklistTask.id)).filter(
            ChecklistTask.wedding_id == wedding_id
        ).scalar()

    @staticmethod
    def max_section_order(db: Session, wedding_id: int) -> int:
        value = db.query(func.max(ChecklistSection.order)).filter(
            ChecklistSection.wedding_id == wedding_id,
            ChecklistSection.template_id.is_(None)
        ).scalar()
        return value or 0

    @staticmethod
    def max_task_order(db: Session, wedding_id: int) -> int:
        value = db.query(func.max(ChecklistTask.order)).filter(
            ChecklistTask.wedding_id == wedding_id,
            ChecklistTask.template_id.is_(None)
        ).scalar()
        return value or 0

    @staticmethod
    def sections_by_name(db: Session, wedding_id: int) -> Dict[str, ChecklistSection]:
        """Sections keyed by lowercased name"""
        return {
            section.name.lower(): section
            for section in ChecklistRepo.list_sections(db, wedding_id)
        }

    @staticmethod
    def get_template(db: Session, planner_id: int) -> Optional[ChecklistTemplate]:
        return db.query(ChecklistTemplate).filter(
            ChecklistTemplate.planner_id == planner_id
        ).first()


# -------- Seating repository --------

class SeatingRepo:
    @staticmethod
    def list_tables(db: Session, wedding_id: int) -> List[Table]:
        return db.query(Table).filter(Table.wedding_id == wedding_id).order_by(Table.number).all()

    @staticmethod
    def get_table(db: Session, wedding_id: int, table_id: int) -> Optional[Table]:
        return db.query(Table).filter(
            Table.id == table_id,
            Table.wedding_id == wedding_id
        ).first()

    @staticmethod
    def list_confirmed_guests(db: Session, wedding_id: int) -> List[FamilyMember]:
        return db.query(FamilyMember).join(Family).filter(
            Family.wedding_id == wedding_id,
            FamilyMember.attending.is_(True)
        ).order_by(FamilyMember.id).all()

    @staticmethod
    def count_guests(db: Session, wedding_id: int) -> int:
        return db.query(func.count(FamilyMember.id)).join(Family).filter(
            Family.wedding_id == wedding_id
        ).scalar()

    @staticmethod
    def get_guest(db: Session, wedding_id: int, guest_id: int) -> Optional[FamilyMember]:
        return db.query(FamilyMember).join(Family).filter(
            FamilyMember.id == guest_id,
            Family.wedding_id == wedding_id
        ).first()

    @staticmethod
    def get_family(db: Session, wedding_id: int, family_id: int) -> Optional[Family]:
        return db.query(Family).filter(
            Family.id == family_id,
            Family.wedding_id == wedding_id
        ).first()
