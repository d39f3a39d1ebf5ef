"""
bhportal exceptions

Error taxonomy for the form wizards and the records they persist. Validation
failures are ordinary results and never raised; the classes below cover
misuse, unexpected schema crashes, gateway failures and record conflicts.
"""

from enum import Enum
from typing import Any, Dict, Optional


class WizardErrorType(Enum):
    """Types of wizard errors"""
    VALIDATION_ERROR = "validation_error"
    CONFIGURATION_ERROR = "configuration_error"
    RUNTIME_ERROR = "runtime_error"
    NETWORK_ERROR = "network_error"
    DATA_ERROR = "data_error"
    USER_ERROR = "user_error"


class WizardError(Exception):
    """Base class for every error raised by bhportal"""

    error_type = WizardErrorType.RUNTIME_ERROR
    status_code = 400
    default_message = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None, **context: Any):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Body used by the JSON error handlers"""
        return {'error': self.message, 'error_type': self.error_type.value}


class WizardNavigationError(WizardError):
    """A step index outside the wizard, or submit away from the final step"""
    error_type = WizardErrorType.USER_ERROR
    default_message = "Invalid wizard step"


class WizardBusyError(WizardError):
    """A draft save or submission is already in flight"""
    error_type = WizardErrorType.USER_ERROR
    status_code = 409
    default_message = "Another save is already in progress"


class WizardClosedError(WizardError):
    """The wizard was already submitted"""
    error_type = WizardErrorType.USER_ERROR
    status_code = 409
    default_message = "This form has already been submitted"


class SchemaEvaluationError(WizardError):
    """A step schema crashed instead of returning validation messages"""
    error_type = WizardErrorType.CONFIGURATION_ERROR
    status_code = 500
    default_message = "The form could not be validated"


class UnknownFieldPathError(WizardError):
    """A field path that names no field of the form"""
    error_type = WizardErrorType.CONFIGURATION_ERROR
    default_message = "Unknown form field"


class FieldAccessError(WizardError):
    """A step tried to write a field owned by another step"""
    error_type = WizardErrorType.CONFIGURATION_ERROR
    default_message = "Field is not part of this step"


class GatewayError(WizardError):
    """The persistence gateway refused or failed a create/update call"""
    error_type = WizardErrorType.NETWORK_ERROR
    status_code = 502

    default_message = "The records service could not be reached"

    def __init__(self, message: Optional[str] = None, status: Optional[int] = None, **context: Any):
        super().__init__(message, **context)
        # message sent by the records service, if any
        self.server_message = message
        self.status = status


class RecordNotFoundError(WizardError):
    error_type = WizardErrorType.DATA_ERROR
    status_code = 404
    default_message = "Record not found"


class RecordValidationError(WizardError):
    """Final submission rejected by the combined schema"""
    error_type = WizardErrorType.VALIDATION_ERROR
    default_message = "Invalid input data"

    def __init__(self, field_errors: Dict[str, str], message: Optional[str] = None):
        super().__init__(message)
        self.field_errors = field_errors

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body['fieldErrors'] = self.field_errors
        return body


class RecordLockedError(WizardError):
    """Edits to a record that already left the draft state"""
    error_type = WizardErrorType.USER_ERROR
    status_code = 409
    default_message = "This record has already been submitted and can no longer be edited"


class DecisionError(WizardError):
    """A decision on a record that is not waiting for review"""
    error_type = WizardErrorType.VALIDATION_ERROR
    status_code = 409
    default_message = "Invalid decision"


class UnknownFormTypeError(WizardError):
    error_type = WizardErrorType.USER_ERROR
    status_code = 404
    default_message = "Unknown form type"
