"""
Step Schema Registry

Each wizard step is described by one marshmallow schema holding the slice of
form state shown on that step. The registry keeps them in order, builds the
combined schema used at final submission and answers which step owns a
given field.
"""

import logging
from collections import namedtuple
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Type, Union

from marshmallow import EXCLUDE, Schema, ValidationError, validates_schema

from ..exceptions import SchemaEvaluationError, UnknownFieldPathError, WizardNavigationError
from .paths import FieldPath, error_root, flatten_errors, prune, resolve

logger = logging.getLogger(__name__)


class Condition(namedtuple('Condition', ['trigger', 'expected', 'message'])):
    """``trigger == expected`` makes the owning field a required non-empty string"""

    def __new__(cls, trigger: str, expected: Any = True, message: str = 'Please provide details'):
        return super().__new__(cls, trigger, expected, message)


class StepSchema(Schema):
    """
    Base class of every step schema

    Steps run against the whole form state, so keys belonging to other steps
    are ignored. Cross-field requirements are declared on the class::

        conditional_requirements = {
            'courtOrderedDetails': Condition('courtOrderedTreatment', True),
        }
    """

    class Meta:
        unknown = EXCLUDE

    conditional_requirements: Dict[str, Union[Condition, Tuple]] = {}

    @validates_schema(skip_on_field_errors=False)
    def check_conditional_requirements(self, data, **kwargs):
        errors: Dict[str, List[str]] = {}
        for field_name, condition in self.conditional_requirements.items():
            condition = Condition(*condition)
            if data.get(condition.trigger) != condition.expected:
                continue
            value = data.get(field_name)
            if not isinstance(value, str) or not value.strip():
                errors[field_name] = [condition.message]
        if errors:
            raise ValidationError(errors)


@dataclass(frozen=True)
class WizardStep:
    """One page of a wizard"""

    title: str
    schema: Type[StepSchema]
    description: Optional[str] = None

    @property
    def fields(self) -> Tuple[str, ...]:
        return tuple(self.schema._declared_fields)

    def to_dict(self) -> Dict[str, Any]:
        """Step as sent to the page; ``options`` holds field metadata such as select choices"""
        return {
            'title': self.title,
            'description': self.description,
            'fields': list(self.fields),
            'options': {
                name: dict(field.metadata)
                for name, field in self.schema._declared_fields.items()
                if field.metadata
            },
        }


def combine_schemas(name: str,
                    schemas: Sequence[Type[StepSchema]],
                    submission_schema: Optional[Type[StepSchema]] = None) -> Type[StepSchema]:
    """
    Build the schema used for final submission

    The result inherits every step schema, so each step field and validation
    hook is part of it. The submission-only schema comes first in the bases,
    so its fields replace same-named step fields (e.g. a signature group whose
    members become required). Conditional requirements of all schemas are
    merged.
    """
    bases = tuple(schemas)
    if submission_schema is not None:
        bases = (submission_schema,) + bases

    conditions: Dict[str, Any] = {}
    for schema in reversed(bases):
        conditions.update(schema.conditional_requirements)

    return type(name, bases, {'conditional_requirements': conditions})


class StepSchemaRegistry:
    """
    Ordered step schemas of one form type plus its combined schema

    Step indexes are 1-based, as shown to the user.
    """

    def __init__(self,
                 name: str,
                 steps: Sequence[WizardStep],
                 submission_schema: Optional[Type[StepSchema]] = None):
        if not steps:
            raise ValueError("A wizard needs at least one step")
        self.name = name
        self.steps: Tuple[WizardStep, ...] = tuple(steps)
        self.submission_schema = submission_schema
        self.combined_schema = combine_schemas(
            f'{name}CombinedSchema', [step.schema for step in self.steps], submission_schema
        )
        self._combined = self.combined_schema()

        self._owners: Dict[str, int] = {}
        for index, step in enumerate(self.steps, start=1):
            for field_name in step.fields:
                self._owners.setdefault(field_name, index)

        self._check_conditions()

    def _check_conditions(self):
        for step in self.steps:
            for field_name, condition in step.schema.conditional_requirements.items():
                for name in (field_name, Condition(*condition).trigger):
                    if name not in step.schema._declared_fields:
                        raise UnknownFieldPathError(
                            f"Condition on '{step.title}' names unknown field '{name}'", path=name
                        )

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    @property
    def labels(self) -> List[str]:
        return [step.title for step in self.steps]

    def get(self, index: int) -> WizardStep:
        if isinstance(index, bool) or not isinstance(index, int) \
                or not 1 <= index <= self.total_steps:
            raise WizardNavigationError(
                f"Step {index!r} is outside 1..{self.total_steps}", step=index
            )
        return self.steps[index - 1]

    def validate_step(self, index: int, data: Mapping[str, Any]) -> Dict[str, str]:
        """Errors of step ``index`` as ``{dotted path: message}``; empty when valid"""
        step = self.get(index)
        return self._run(step.schema(), data, step.title)

    def validate_submission(self, data: Mapping[str, Any]) -> Dict[str, str]:
        """Errors of the whole form against the combined schema"""
        return self._run(self.combined_schema(), data, 'submission')

    def _run(self, schema: Schema, data: Mapping[str, Any], label: str) -> Dict[str, str]:
        try:
            messages = schema.validate(data)
        except Exception as e:
            logger.error(f"{self.name} schema crashed while validating {label}: {e}")
            raise SchemaEvaluationError(step=label) from e
        return flatten_errors(messages)

    def step_for_path(self, path: Union[str, FieldPath]) -> Optional[int]:
        """Step that shows the top-level field of ``path``"""
        root = path.root if isinstance(path, FieldPath) else error_root(path)
        index = self._owners.get(root)
        if index is None and root in self._combined.fields:
            # submission-only fields are collected on the final step
            return self.total_steps
        return index

    def error_steps(self, errors: Mapping[str, str]) -> List[int]:
        """Sorted step numbers carrying at least one of ``errors``"""
        steps = {self.step_for_path(path) for path in errors}
        steps.discard(None)
        return sorted(steps)

    def declared_value(self, name: str, value: Any) -> Any:
        """``value`` of field ``name`` without group or row keys the form no longer declares"""
        return prune(value, self._combined.fields.get(name))

    def resolve_path(self, path: Union[str, FieldPath]) -> FieldPath:
        return resolve(path, self._combined)

    def is_known_field(self, name: str) -> bool:
        return name in self._combined.fields
