"""
Multi-step form wizard engine

One engine drives every form type. It owns the form state and the wizard
state of a single form being filled in, validates each step against the
Step Schema Registry before moving forward, and hands the complete form to a
persistence gateway when a draft is saved or the form is submitted.

Lifecycle::

    Editing(step) --advance, step valid--> Editing(step + 1)
    Editing(step) --retreat--> Editing(step - 1)
    Editing(step) --save_draft--> SavingDraft(step) --> Editing(step)
    Editing(last) --submit, form valid--> Submitting --success--> Done
    Submitting --failure--> Editing(last)

Failed saves never modify the form state: gateways always receive a copy.
"""

import copy
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from ..config import WizardBehaviorConfig
from ..exceptions import (
    FieldAccessError,
    GatewayError,
    SchemaEvaluationError,
    WizardBusyError,
    WizardClosedError,
    WizardNavigationError,
)
from .fields import normalize_date
from .paths import FieldPath, error_root
from .progress import ProgressIndicator
from .registry import StepSchemaRegistry, WizardStep

logger = logging.getLogger(__name__)

FormState = Dict[str, Any]


@dataclass(frozen=True)
class WizardDefinition:
    """
    Everything that makes a wizard an ASAM assessment or a resident intake

    Args:
        form_type: short name used in URLs and the CLI (``asam``, ``intake``)
        title: heading shown above the wizard
        registry: step schemas of the form
        defaults: factory returning the initial form state of a blank form
        collection: records API collection the form is saved to
        record_key: key wrapping the record in records API responses
        subject_field: form field naming the person the record is about
        date_fields: fields normalized to ``YYYY-MM-DD`` when resuming a draft
    """

    form_type: str
    title: str
    registry: StepSchemaRegistry
    defaults: Callable[[], FormState]
    collection: str
    record_key: str
    subject_field: str
    date_fields: Tuple[str, ...] = ()
    submit_failure_message: str = "Failed to submit"
    submitted_title: str = "Submitted"
    submitted_message: str = "The form has been submitted for review."

    @property
    def total_steps(self) -> int:
        return self.registry.total_steps

    def make_defaults(self) -> FormState:
        return copy.deepcopy(self.defaults())


class WizardEventType(Enum):
    """Side effects the page hosting the wizard reacts to"""
    SCROLL_TO_TOP = "scroll_to_top"
    RECORD_CREATED = "record_created"
    SUBMITTED = "submitted"


@dataclass(frozen=True)
class WizardEvent:
    type: WizardEventType
    record_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {'type': self.type.value}
        if self.record_id is not None:
            data['recordId'] = self.record_id
        return data


@dataclass(frozen=True)
class Notification:
    """Toast shown after a save or a submission"""

    level: str
    title: str
    message: str

    @classmethod
    def success(cls, title: str, message: str) -> 'Notification':
        return cls('success', title, message)

    @classmethod
    def error(cls, message: str, title: str = "Error") -> 'Notification':
        return cls('error', title, message)

    def to_dict(self) -> Dict[str, str]:
        return {'level': self.level, 'title': self.title, 'message': self.message}


@dataclass
class SaveOutcome:
    """Result of ``save_draft`` and ``submit``"""

    success: bool
    record_id: Optional[str] = None
    created: bool = False
    notification: Optional[Notification] = None
    field_errors: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'recordId': self.record_id,
            'created': self.created,
            'notification': self.notification.to_dict() if self.notification else None,
            'fieldErrors': dict(self.field_errors),
        }


@dataclass
class WizardState:
    current_step: int = 1
    is_submitting: bool = False
    is_saving_draft: bool = False
    field_errors: Dict[str, str] = field(default_factory=dict)
    # steps holding errors after a rejected submission
    error_steps: List[int] = field(default_factory=list)
    done: bool = False


class StepFormAccess:
    """
    Form access handed to the renderer of one step

    Any value of the form can be read, but only the fields shown on the step
    can be written. Paths are checked against the form schema, so a
    misspelled path raises ``UnknownFieldPathError``.
    """

    def __init__(self, engine: 'WizardEngine', step_index: int):
        self._engine = engine
        self.step_index = step_index
        self.step: WizardStep = engine.registry.get(step_index)

    def get(self, path: Union[str, FieldPath], default: Any = None) -> Any:
        path = self._engine.registry.resolve_path(path)
        return copy.deepcopy(path.get(self._engine.form_state, default))

    def set(self, path: Union[str, FieldPath], value: Any) -> None:
        path = self._writable(path)
        path.set(self._engine.form_state, copy.deepcopy(value))

    def append_row(self, field_name: str, row: Optional[Dict[str, Any]] = None) -> int:
        """Add an entry to a repeated group; returns its index"""
        path = self._writable(field_name)
        rows = path.get(self._engine.form_state)
        if not isinstance(rows, list):
            rows = []
            path.set(self._engine.form_state, rows)
        rows.append(copy.deepcopy(row) if row is not None else {})
        return len(rows) - 1

    def remove_row(self, field_name: str, index: int) -> None:
        path = self._writable(field_name)
        rows = path.get(self._engine.form_state)
        if not isinstance(rows, list) or not 0 <= index < len(rows):
            raise IndexError(f"No row {index} in '{field_name}'")
        del rows[index]

    def errors(self) -> Dict[str, str]:
        """Field errors of this step"""
        fields = set(self.step.fields)
        return {
            path: message
            for path, message in self._engine.state.field_errors.items()
            if error_root(path) in fields
        }

    def error_for(self, path: Union[str, FieldPath]) -> Optional[str]:
        path = self._engine.registry.resolve_path(path)
        return self._engine.state.field_errors.get(str(path))

    def _writable(self, path: Union[str, FieldPath]) -> FieldPath:
        self._engine._ensure_open()
        path = self._engine.registry.resolve_path(path)
        if path.root not in self.step.fields:
            raise FieldAccessError(
                f"'{path}' is not shown on step {self.step_index} ({self.step.title})",
                path=str(path), step=self.step_index,
            )
        return path


class WizardEngine:
    """
    Drives one form through its steps

    Args:
        definition: the form type being filled in
        gateway: where drafts and submissions are saved
        record_id: identifier of an already saved record, if any
        behavior: wizard behaviour settings
    """

    def __init__(self,
                 definition: WizardDefinition,
                 gateway,
                 record_id: Optional[str] = None,
                 behavior: Optional[WizardBehaviorConfig] = None,
                 initial_data: Optional[Mapping[str, Any]] = None):
        self.definition = definition
        self.registry = definition.registry
        self.gateway = gateway
        self.record_id = record_id
        self.behavior = behavior or WizardBehaviorConfig()
        self.form_state: FormState = {}
        self.state = WizardState()
        self.notification: Optional[Notification] = None
        self._events: List[WizardEvent] = []
        self.initialize(initial_data=initial_data)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def current_step(self) -> int:
        return self.state.current_step

    @property
    def total_steps(self) -> int:
        return self.registry.total_steps

    @property
    def field_errors(self) -> Dict[str, str]:
        return self.state.field_errors

    @property
    def is_done(self) -> bool:
        return self.state.done

    def initialize(self,
                   defaults: Optional[Mapping[str, Any]] = None,
                   initial_data: Optional[Mapping[str, Any]] = None) -> None:
        """
        Build the form state from defaults and an optional saved draft

        Keys of ``initial_data`` that name a field of the form replace the
        default value; unknown keys, ``None`` and values of the wrong shape
        are ignored so drafts saved by older versions of a form still load.
        Checkbox groups and table rows keep only the keys the form declares.
        ``draftStep`` becomes the current step when it is a valid step number.
        """
        base = copy.deepcopy(dict(defaults)) if defaults is not None else self.definition.make_defaults()
        form_state = copy.deepcopy(base)
        current_step = 1

        if isinstance(initial_data, Mapping):
            for key, value in initial_data.items():
                if key not in base:
                    continue
                merged = self._merge_value(key, value, base[key])
                if merged is not None:
                    form_state[key] = merged

            draft_step = initial_data.get('draftStep')
            if isinstance(draft_step, int) and not isinstance(draft_step, bool) \
                    and 1 <= draft_step <= self.total_steps:
                current_step = draft_step
            elif draft_step is not None:
                logger.debug(f"Ignoring draft step {draft_step!r} for {self.definition.form_type}")

        self.form_state = form_state
        self.state = WizardState(current_step=current_step)
        self.notification = None
        self._events = []
        logger.debug(f"Initialized {self.definition.form_type} wizard at step {current_step}")

    def _merge_value(self, key: str, value: Any, default: Any) -> Any:
        """Value to store for ``key``, or ``None`` to keep the default"""
        if value is None:
            return None
        if key in self.definition.date_fields:
            normalized = normalize_date(value)
            if normalized is None:
                logger.debug(f"Ignoring unreadable date for '{key}': {value!r}")
            return normalized
        if isinstance(default, dict):
            if not isinstance(value, dict):
                return None
            merged = copy.deepcopy(default)
            merged.update(self.registry.declared_value(key, copy.deepcopy(value)))
            return merged
        if isinstance(default, list):
            if not isinstance(value, list):
                return None
            return self.registry.declared_value(key, copy.deepcopy(value))
        if isinstance(default, bool):
            return value if isinstance(value, bool) else None
        if isinstance(value, bool) and default is not None:
            return None
        if isinstance(value, (dict, list)):
            return None
        return value

    def progress(self) -> ProgressIndicator:
        return ProgressIndicator(self.current_step, self.total_steps, tuple(self.registry.labels))

    def pop_events(self) -> List[WizardEvent]:
        events, self._events = self._events, []
        return events

    def form_access(self, index: Optional[int] = None) -> StepFormAccess:
        """Form access for the renderer of step ``index`` (the current step by default)"""
        return StepFormAccess(self, self.current_step if index is None else index)

    def _emit(self, event_type: WizardEventType, record_id: Optional[str] = None) -> None:
        self._events.append(WizardEvent(event_type, record_id))

    def _ensure_open(self) -> None:
        if self.state.done:
            raise WizardClosedError(form_type=self.definition.form_type)

    def _ensure_idle(self) -> None:
        if self.state.is_saving_draft or self.state.is_submitting:
            raise WizardBusyError(form_type=self.definition.form_type)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def validate_step(self, index: int) -> bool:
        """
        Validate one step against the current form state

        On failure the errors are stored in ``field_errors`` under their
        dotted paths; on success the previous errors of the step are cleared.
        A schema crash raises ``SchemaEvaluationError`` and changes nothing.
        """
        self._ensure_open()
        step = self.registry.get(index)
        try:
            errors = self.registry.validate_step(index, copy.deepcopy(self.form_state))
        except SchemaEvaluationError:
            logger.error(f"Validation of {self.definition.form_type} step {index} crashed")
            raise

        step_fields = set(step.fields)
        self.state.field_errors = {
            path: message
            for path, message in self.state.field_errors.items()
            if error_root(path) not in step_fields
        }
        if errors:
            self.state.field_errors.update(errors)
            logger.warning(
                f"{self.definition.form_type} step {index} ({step.title}) failed validation: {sorted(errors)}"
            )
            return False
        logger.debug(f"{self.definition.form_type} step {index} ({step.title}) passed validation")
        return True

    def advance(self) -> bool:
        """
        Validate the current step and move to the next one when it passes

        Returns the validation result. On the last step the form is
        validated but the wizard stays where it is.
        """
        self._ensure_open()
        valid = self.validate_step(self.current_step)
        if valid and self.current_step < self.total_steps:
            self.state.current_step += 1
            self._emit(WizardEventType.SCROLL_TO_TOP)
        return valid

    def retreat(self) -> bool:
        """Go back one step without validating; errors are kept"""
        self._ensure_open()
        if self.current_step <= 1:
            return False
        self.state.current_step -= 1
        self._emit(WizardEventType.SCROLL_TO_TOP)
        return True

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save_draft(self) -> SaveOutcome:
        """Save the complete form as a draft, remembering the current step"""
        self._ensure_open()
        self._ensure_idle()

        payload = copy.deepcopy(self.form_state)
        payload['isDraft'] = True
        payload['currentStep'] = self.current_step

        created = self.record_id is None
        self.state.is_saving_draft = True
        try:
            result = self.gateway.save(self.record_id, payload)
        except GatewayError as e:
            logger.error(f"Saving {self.definition.form_type} draft {self.record_id} failed: {e.message}")
            self.notification = Notification.error(e.server_message or "Failed to save draft")
            return SaveOutcome(False, record_id=self.record_id, notification=self.notification)
        finally:
            self.state.is_saving_draft = False

        if created and result.record_id:
            self.record_id = result.record_id
            self._emit(WizardEventType.RECORD_CREATED, self.record_id)
            logger.info(f"Created {self.definition.form_type} draft {self.record_id}")
        else:
            logger.info(f"Saved {self.definition.form_type} draft {self.record_id} at step {self.current_step}")

        self.notification = Notification.success(
            "Draft Saved", "Your progress has been saved. You can continue later."
        )
        return SaveOutcome(True, record_id=self.record_id, created=created, notification=self.notification)

    def submit(self) -> SaveOutcome:
        """
        Validate the whole form and send it as a final submission

        Only possible from the last step. When the combined schema rejects
        the form nothing is sent; ``field_errors`` holds every error and
        ``error_steps`` the steps they appear on.
        """
        self._ensure_open()
        self._ensure_idle()
        if self.current_step != self.total_steps:
            raise WizardNavigationError(
                f"Submit is only available on step {self.total_steps}", step=self.current_step
            )

        errors = self.registry.validate_submission(copy.deepcopy(self.form_state))
        if errors:
            self.state.field_errors = dict(errors)
            self.state.error_steps = self.registry.error_steps(errors)
            logger.warning(
                f"{self.definition.form_type} submission rejected, errors on steps {self.state.error_steps}"
            )
            if self.behavior.navigate_to_first_error and self.state.error_steps:
                first = self.state.error_steps[0]
                if first != self.current_step:
                    self.state.current_step = first
                    self._emit(WizardEventType.SCROLL_TO_TOP)
            steps = ', '.join(str(step) for step in self.state.error_steps)
            self.notification = Notification.error(
                f"Please correct the errors on step(s) {steps} before submitting."
            )
            return SaveOutcome(
                False, record_id=self.record_id, notification=self.notification, field_errors=errors
            )

        payload = copy.deepcopy(self.form_state)
        payload['isDraft'] = False

        created = self.record_id is None
        self.state.is_submitting = True
        try:
            result = self.gateway.save(self.record_id, payload)
        except GatewayError as e:
            logger.error(f"Submitting {self.definition.form_type} {self.record_id} failed: {e.message}")
            self.notification = Notification.error(
                e.server_message or self.definition.submit_failure_message
            )
            return SaveOutcome(False, record_id=self.record_id, notification=self.notification)
        finally:
            self.state.is_submitting = False

        if result.record_id:
            self.record_id = result.record_id
        self.state.field_errors = {}
        self.state.error_steps = []
        self.state.done = True
        self._emit(WizardEventType.SUBMITTED, self.record_id)
        logger.info(f"Submitted {self.definition.form_type} {self.record_id}")

        self.notification = Notification.success(
            self.definition.submitted_title, self.definition.submitted_message
        )
        return SaveOutcome(True, record_id=self.record_id, created=created, notification=self.notification)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            'formType': self.definition.form_type,
            'title': self.definition.title,
            'recordId': self.record_id,
            'currentStep': self.current_step,
            'totalSteps': self.total_steps,
            'isSubmitting': self.state.is_submitting,
            'isSavingDraft': self.state.is_saving_draft,
            'fieldErrors': dict(self.state.field_errors),
            'errorSteps': list(self.state.error_steps),
            'done': self.state.done,
            'progress': self.progress().to_dict(),
            'formState': copy.deepcopy(self.form_state),
        }
