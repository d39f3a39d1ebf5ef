"""
Records service

Server side of the wizard persistence contract. Drafts are stored without
validation, keeping only the fields the form declares. Final submissions
must pass the combined schema of their form and move the record to PENDING,
where it waits for a reviewer's decision. A submitted record can no longer
be edited.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from marshmallow import Schema, ValidationError, fields, validate, validates_schema
from sqlalchemy.exc import SQLAlchemyError

from .exceptions import (
    DecisionError,
    GatewayError,
    RecordLockedError,
    RecordNotFoundError,
    RecordValidationError,
    WizardError,
)
from .forms.paths import flatten_errors
from .forms.wizard import WizardDefinition
from .gateway import GatewayResult, PersistenceGateway
from .models import RECORD_MODELS, RecordStatus, db, utcnow

logger = logging.getLogger(__name__)

BOOKKEEPING_FIELDS = ('isDraft', 'currentStep')


class DecisionSchema(Schema):
    """Reviewer decision on a pending assessment"""

    status = fields.String(
        required=True,
        validate=validate.OneOf([status.value for status in RecordStatus.decisions()]),
    )
    decisionReason = fields.String(allow_none=True)

    reason_min_length = 1
    reason_required_on_approval = True
    reason_message = "Decision reason is required"
    already_decided_message = "Assessment has already been reviewed"

    @validates_schema
    def check_decision_reason(self, data, **kwargs):
        if data['status'] == RecordStatus.APPROVED.value and not self.reason_required_on_approval:
            return
        reason = (data.get('decisionReason') or '').strip()
        if len(reason) < self.reason_min_length:
            raise ValidationError(self.reason_message, field_name='decisionReason')


class IntakeDecisionSchema(DecisionSchema):
    reason_min_length = 10
    reason_required_on_approval = False
    reason_message = "Please provide a reason (at least 10 characters) for conditional approval or denial"
    already_decided_message = "Intake already has a decision"


DECISION_SCHEMAS = {
    'asam': DecisionSchema,
    'intake': IntakeDecisionSchema,
}


class RecordService:
    """
    Stores the records of one form type

    Args:
        definition: wizard definition of the form type
    """

    def __init__(self, definition: WizardDefinition):
        self.definition = definition
        self.registry = definition.registry
        self.model = RECORD_MODELS[definition.form_type]
        self.label = definition.record_key.capitalize()

    def get(self, record_id: str):
        record = db.session.get(self.model, record_id)
        if record is None:
            raise RecordNotFoundError(f"{self.label} not found", record_id=record_id)
        return record

    def list(self, status: Optional[str] = None) -> List[Any]:
        query = db.session.query(self.model)
        if status:
            try:
                query = query.filter(self.model.status == RecordStatus(status))
            except ValueError:
                raise RecordValidationError({'status': f"Unknown status '{status}'"}) from None
        return query.order_by(self.model.created_on.desc()).all()

    def create(self, payload: Mapping[str, Any]):
        record = self.model(form_data={}, current_step=1)
        self._apply(record, payload)
        db.session.add(record)
        self._commit(f"create {self.definition.form_type}")
        logger.info(f"Created {self.definition.form_type} {record.id} ({record.status.value})")
        return record

    def update(self, record_id: str, payload: Mapping[str, Any]):
        record = self.get(record_id)
        if not record.is_draft:
            raise RecordLockedError(record_id=record_id)
        self._apply(record, payload)
        self._commit(f"update {self.definition.form_type} {record_id}")
        logger.info(f"Updated {self.definition.form_type} {record.id} ({record.status.value})")
        return record

    def decide(self, record_id: str, status: Any, reason: Optional[str] = None):
        """
        Record a reviewer decision on a pending record

        Args:
            record_id: the record being reviewed
            status: APPROVED, CONDITIONAL or DENIED
            reason: explanation shown to the submitting facility

        Raises:
            DecisionError: the record is not waiting for review
            RecordValidationError: unknown status or missing reason
        """
        record = self.get(record_id)
        schema_class = DECISION_SCHEMAS[self.definition.form_type]
        if record.status != RecordStatus.PENDING:
            raise DecisionError(schema_class.already_decided_message, record_id=record_id)

        errors = schema_class().validate({'status': status, 'decisionReason': reason})
        if errors:
            raise RecordValidationError(flatten_errors(errors))

        record.status = RecordStatus(status)
        record.decision_reason = reason or None
        record.decided_on = utcnow()
        self._commit(f"decide {self.definition.form_type} {record_id}")
        logger.info(f"{self.definition.form_type} {record.id} decided: {record.status.value}")
        return record

    def to_initial_data(self, record) -> Dict[str, Any]:
        """Data to resume a draft with: the stored form plus ``draftStep``"""
        data = dict(record.form_data or {})
        data['draftStep'] = record.current_step
        return data

    def _apply(self, record, payload: Mapping[str, Any]) -> None:
        if not isinstance(payload, Mapping):
            raise RecordValidationError({}, "Invalid input data")

        is_draft, current_step = self._bookkeeping(payload)
        form = {
            key: self.registry.declared_value(key, value) for key, value in payload.items()
            if key not in BOOKKEEPING_FIELDS and self.registry.is_known_field(key)
        }
        ignored = set(payload) - set(form) - set(BOOKKEEPING_FIELDS)
        if ignored:
            logger.debug(f"Ignoring unknown {self.definition.form_type} fields: {sorted(ignored)}")

        if is_draft:
            record.status = RecordStatus.DRAFT
            record.is_draft = True
            if current_step is not None:
                record.current_step = current_step
        else:
            errors = self.registry.validate_submission(form)
            if errors:
                logger.warning(
                    f"Rejected {self.definition.form_type} submission: {sorted(errors)}"
                )
                raise RecordValidationError(errors)
            record.status = RecordStatus.PENDING
            record.is_draft = False
            record.current_step = self.registry.total_steps
            record.submitted_on = utcnow()

        subject = form.get(self.definition.subject_field)
        record.subject_name = subject if isinstance(subject, str) and subject.strip() \
            else (record.subject_name or f"Draft {self.label}")
        record.form_data = form

    def _bookkeeping(self, payload: Mapping[str, Any]) -> Tuple[bool, Optional[int]]:
        is_draft = payload.get('isDraft') is True
        current_step = payload.get('currentStep')
        if isinstance(current_step, bool) or not isinstance(current_step, int):
            current_step = None
        else:
            current_step = min(max(current_step, 1), self.registry.total_steps)
        return is_draft, current_step

    def _commit(self, action: str) -> None:
        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to {action}: {e}")
            raise


class LocalPersistenceGateway(PersistenceGateway):
    """Gateway calling the records service of this application directly"""

    def __init__(self, definition: WizardDefinition):
        self.definition = definition
        self.service = RecordService(definition)

    def create(self, payload: Dict[str, Any]) -> GatewayResult:
        record = self._call(self.service.create, payload)
        return GatewayResult(record.id, {self.definition.record_key: record.to_dict()}, created=True)

    def update(self, record_id: str, payload: Dict[str, Any]) -> GatewayResult:
        record = self._call(self.service.update, record_id, payload)
        return GatewayResult(record.id, {self.definition.record_key: record.to_dict()}, created=False)

    @staticmethod
    def _call(method, *args):
        try:
            return method(*args)
        except WizardError as e:
            raise GatewayError(e.message, status=e.status_code) from e
        except SQLAlchemyError as e:
            raise GatewayError(None, status=500) from e
