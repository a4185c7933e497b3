"""
Checklist models: planner templates, sections and tasks
"""

from datetime import datetime
from enum import Enum
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from app.core.db import Base


class TaskAssignment(str, Enum):
    WEDDING_PLANNER = "WEDDING_PLANNER"
    COUPLE = "COUPLE"
    OTHER = "OTHER"


class TaskStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class ChecklistTemplate(Base):
    __tablename__ = "checklist_templates"

    id = Column(Integer, primary_key=True, index=True)
    planner_id = Column(Integer, nullable=False, unique=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    sections = relationship(
        "ChecklistSection",
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="ChecklistSection.order",
    )


class ChecklistSection(Base):
    """A named group of tasks, owned by either a wedding or a template"""
    __tablename__ = "checklist_sections"

    id = Column(Integer, primary_key=True, index=True)
    template_id = Column(Integer, ForeignKey("checklist_templates.id"), nullable=True, index=True)
    wedding_id = Column(Integer, ForeignKey("weddings.id"), nullable=True, index=True)
    name = Column(String(100), nullable=False)
    order = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    template = relationship("ChecklistTemplate", back_populates="sections")
    tasks = relationship(
        "ChecklistTask",
        back_populates="section",
        cascade="all, delete-orphan",
        order_by="ChecklistTask.order",
    )


class ChecklistTask(Base):
    __tablename__ = "checklist_tasks"

    id = Column(Integer, primary_key=True, index=True)
    section_id = Column(Integer, ForeignKey("checklist_sections.id"), nullable=True, index=True)
    template_id = Column(Integer, ForeignKey("checklist_templates.id"), nullable=True, index=True)
    wedding_id = Column(Integer, ForeignKey("weddings.id"), nullable=True, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    assigned_to = Column(String(20), nullable=False, default=TaskAssignment.COUPLE.value)
    due_date = Column(DateTime, nullable=True)
    due_date_relative = Column(String(50), nullable=True)  # template tasks only, e.g. WEDDING_DATE-90
    status = Column(String(20), nullable=False, default=TaskStatus.PENDING.value)
    completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime, nullable=True)
    order = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    section = relationship("ChecklistSection", back_populates="tasks")
