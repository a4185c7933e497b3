"""
Table model
"""

from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship

from app.core.db import Base

class Table(Base):
    __tablename__ = "tables"

    id = Column(Integer, primary_key=True, index=True)
    wedding_id = Column(Integer, ForeignKey("weddings.id"), nullable=False, index=True)
    number = Column(Integer, nullable=False)
    name = Column(String(100), nullable=True)
    capacity = Column(Integer, nullable=False)

    # Relationships
    wedding = relationship("Wedding", back_populates="tables", foreign_keys=[wedding_id])
    assigned_guests = relationship("FamilyMember", back_populates="table")
