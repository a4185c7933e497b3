"""
Checklist import/export Pydantic schemas
"""

from typing import Any, List, Optional
from pydantic import BaseModel, Field

from app.models.checklist import TaskAssignment, TaskStatus

class ChecklistImportRow(BaseModel):
    """One spreadsheet row that passed schema validation"""
    section: str = Field(min_length=1, max_length=100)
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    assigned_to: TaskAssignment
    due_date: str = Field(min_length=1)
    status: TaskStatus
    completed: bool = False

class ValidationIssue(BaseModel):
    """Row-scoped error; row 0 means the whole batch"""
    row: int
    field: Optional[str] = None
    message: str
    value: Optional[Any] = None

class ValidationWarning(BaseModel):
    """Non-blocking notice about a row"""
    row: int
    message: str

class ImportValidation(BaseModel):
    """Outcome of the validate stage"""
    errors: List[ValidationIssue] = []
    warnings: List[ValidationWarning] = []
    validated_rows: List[ChecklistImportRow] = []

class ImportPreview(BaseModel):
    """Dry-run summary shown before committing an import"""
    new_tasks: int
    updated_tasks: int
    sections: List[str]
    rows: List[ChecklistImportRow]
    warnings: List[ValidationWarning] = []

class ImportResult(BaseModel):
    """Outcome of the commit stage"""
    success: bool
    tasks_created: int
    tasks_updated: int
    errors: List[ValidationIssue] = []
    warnings: List[ValidationWarning] = []
