from typing import Dict

from ..exceptions import UnknownFormTypeError
from .asam import ASAM_WIZARD
from .intake import INTAKE_WIZARD
from .paths import FieldPath, flatten_errors
from .progress import ProgressIndicator
from .registry import Condition, StepSchema, StepSchemaRegistry, WizardStep
from .wizard import (
    Notification,
    SaveOutcome,
    StepFormAccess,
    WizardDefinition,
    WizardEngine,
    WizardEvent,
    WizardEventType,
    WizardState,
)

WIZARDS: Dict[str, WizardDefinition] = {
    ASAM_WIZARD.form_type: ASAM_WIZARD,
    INTAKE_WIZARD.form_type: INTAKE_WIZARD,
}


def get_definition(form_type: str) -> WizardDefinition:
    try:
        return WIZARDS[form_type]
    except KeyError:
        raise UnknownFormTypeError(f"Unknown form type '{form_type}'", form_type=form_type) from None
