"""
SQLAlchemy models for ASAM assessments and resident intakes.

Both forms are stored the same way: the wizard's complete form state as a
JSON document, plus the few columns the portal filters and lists on.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy import Enum as SQLEnum

db = SQLAlchemy()


class RecordStatus(str, Enum):
    """Review status of a form record."""
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    CONDITIONAL = "CONDITIONAL"
    DENIED = "DENIED"

    @classmethod
    def decisions(cls):
        """Statuses a reviewer can move a pending record to."""
        return (cls.APPROVED, cls.CONDITIONAL, cls.DENIED)


def _new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the way the timestamp columns store it."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class FormRecordMixin:
    """Columns shared by every wizard-backed record."""

    id = Column(String(36), primary_key=True, default=_new_id)
    status = Column(SQLEnum(RecordStatus), nullable=False, default=RecordStatus.DRAFT, index=True)
    is_draft = Column(Boolean, nullable=False, default=True)
    current_step = Column(Integer, nullable=False, default=1)
    form_data = Column(JSON, nullable=False, default=dict)
    subject_name = Column(String(255), nullable=False, default='')
    decision_reason = Column(Text)
    submitted_on = Column(DateTime)
    decided_on = Column(DateTime)

    created_on = Column(DateTime, default=utcnow, nullable=False)
    changed_on = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        """Record as returned by the records API: form fields plus bookkeeping."""
        data = dict(self.form_data or {})
        data.update({
            'id': self.id,
            'status': self.status.value if self.status else None,
            'isDraft': self.is_draft,
            'currentStep': self.current_step,
            'decisionReason': self.decision_reason,
            'submittedAt': self.submitted_on.isoformat() if self.submitted_on else None,
            'decidedAt': self.decided_on.isoformat() if self.decided_on else None,
            'createdAt': self.created_on.isoformat() if self.created_on else None,
            'updatedAt': self.changed_on.isoformat() if self.changed_on else None,
        })
        return data


class AsamAssessment(FormRecordMixin, db.Model):
    """ASAM substance use assessment."""
    __tablename__ = 'asam_assessments'

    def __repr__(self):
        return f"<AsamAssessment {self.id} {self.subject_name!r} {self.status.value if self.status else ''}>"


class Intake(FormRecordMixin, db.Model):
    """Resident intake assessment."""
    __tablename__ = 'intakes'

    def __repr__(self):
        return f"<Intake {self.id} {self.subject_name!r} {self.status.value if self.status else ''}>"


RECORD_MODELS = {
    'asam': AsamAssessment,
    'intake': Intake,
}
