"""
Wedding model
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from app.core.db import Base

class Wedding(Base):
    __tablename__ = "weddings"

    id = Column(Integer, primary_key=True, index=True)
    couple_names = Column(String(255), nullable=False)
    wedding_date = Column(DateTime, nullable=True)
    planner_id = Column(Integer, nullable=True, index=True)
    # The couple is seated as a unit through this column, not through family_members
    couple_table_id = Column(Integer, ForeignKey("tables.id", ondelete="SET NULL", use_alter=True), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    tables = relationship(
        "Table",
        back_populates="wedding",
        cascade="all, delete-orphan",
        foreign_keys="Table.wedding_id",
        order_by="Table.number",
    )
    families = relationship("Family", back_populates="wedding", cascade="all, delete-orphan")
