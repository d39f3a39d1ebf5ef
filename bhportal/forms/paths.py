"""
Typed field paths for wizard form state

Form state is a nested mapping: plain fields, checkbox groups stored as
objects and repeated groups stored as lists of objects. A ``FieldPath``
addresses any value in it (``patientName``, ``medicalConditions.diabetes``,
``substanceUseHistory.0.substance``) and can be checked against the marshmallow
schema that describes the form, so a misspelled path fails loudly instead of
silently validating nothing.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from marshmallow import Schema, fields

from ..exceptions import UnknownFieldPathError

Segment = Union[int, str]

_MISSING = object()


@dataclass(frozen=True)
class FieldPath:
    """
    Path to a value inside the form state

    ``root`` is the top-level field name; each segment is either an ``int``
    (position in a repeated group) or a ``str`` (key of a grouped object).
    """

    root: str
    segments: Tuple[Segment, ...] = ()

    def __post_init__(self):
        if not isinstance(self.root, str) or not self.root:
            raise ValueError(f"Invalid field path root: {self.root!r}")
        for segment in self.segments:
            if isinstance(segment, bool) or not isinstance(segment, (int, str)):
                raise ValueError(f"Invalid field path segment: {segment!r}")
            if isinstance(segment, int) and segment < 0:
                raise ValueError(f"Negative index in field path: {segment}")
            if isinstance(segment, str) and not segment:
                raise ValueError("Empty key in field path")

    @classmethod
    def of(cls, root: str, *segments: Segment) -> 'FieldPath':
        return cls(root, tuple(segments))

    @classmethod
    def parse(cls, value: Union[str, 'FieldPath']) -> 'FieldPath':
        """Parse a dotted path; purely numeric parts become list indexes"""
        if isinstance(value, FieldPath):
            return value
        if not isinstance(value, str) or not value:
            raise ValueError(f"Invalid field path: {value!r}")
        root, *rest = value.split('.')
        return cls(root, tuple(int(part) if part.isdigit() else part for part in rest))

    @property
    def kind(self) -> str:
        """'field', 'index' or 'key', after the last segment"""
        if not self.segments:
            return 'field'
        return 'index' if isinstance(self.segments[-1], int) else 'key'

    def child(self, segment: Segment) -> 'FieldPath':
        return FieldPath(self.root, self.segments + (segment,))

    def get(self, data: Mapping[str, Any], default: Any = None) -> Any:
        """Read the value at this path, ``default`` when any part is missing"""
        current: Any = data.get(self.root, _MISSING) if isinstance(data, Mapping) else _MISSING
        for segment in self.segments:
            if current is _MISSING:
                break
            if isinstance(segment, int):
                if isinstance(current, list) and segment < len(current):
                    current = current[segment]
                else:
                    current = _MISSING
            elif isinstance(current, Mapping):
                current = current.get(segment, _MISSING)
            else:
                current = _MISSING
        return default if current is _MISSING else current

    def set(self, data: Dict[str, Any], value: Any) -> None:
        """Write ``value`` at this path, creating missing groups on the way"""
        parts: List[Segment] = [self.root, *self.segments]
        container: Any = data
        for position, segment in enumerate(parts):
            last = position == len(parts) - 1
            if last:
                self._assign(container, segment, value)
                return
            following = parts[position + 1]
            existing = self._read(container, segment)
            if existing is None:
                existing = [] if isinstance(following, int) else {}
                self._assign(container, segment, existing)
            elif isinstance(following, int) and not isinstance(existing, list):
                raise ValueError(f"'{self}' expects a list at '{segment}'")
            elif isinstance(following, str) and not isinstance(existing, dict):
                raise ValueError(f"'{self}' expects an object at '{segment}'")
            container = existing

    @staticmethod
    def _read(container: Any, segment: Segment) -> Any:
        if isinstance(segment, int):
            return container[segment] if segment < len(container) else None
        return container.get(segment)

    @staticmethod
    def _assign(container: Any, segment: Segment, value: Any) -> None:
        if isinstance(segment, int):
            while len(container) <= segment:
                container.append(None)
        container[segment] = value

    def __str__(self) -> str:
        return '.'.join(str(part) for part in (self.root, *self.segments))


def resolve(path: Union[str, FieldPath], schema: Schema) -> FieldPath:
    """
    Check that ``path`` names a field described by ``schema``

    Walks nested schemas, lists and dicts the same way marshmallow would
    when loading, and raises ``UnknownFieldPathError`` on the first part
    that the schema does not declare.
    """
    path = FieldPath.parse(path)
    field = schema.fields.get(path.root)
    if field is None:
        raise UnknownFieldPathError(f"Unknown form field '{path}'", path=str(path))

    for segment in path.segments:
        field = _descend(field, segment)
        if field is None:
            raise UnknownFieldPathError(f"Unknown form field '{path}'", path=str(path))
    return path


def _descend(field: fields.Field, segment: Segment) -> Optional[fields.Field]:
    if isinstance(field, fields.List):
        return field.inner if isinstance(segment, int) else None
    if isinstance(field, fields.Nested) and isinstance(segment, str):
        return field.schema.fields.get(segment)
    if isinstance(field, fields.Dict) and isinstance(segment, str):
        return field.value_field or fields.Raw()
    if isinstance(field, fields.Raw) and type(field) is fields.Raw:
        return fields.Raw()
    return None


def prune(value: Any, field: Optional[fields.Field]) -> Any:
    """
    Copy of ``value`` without the keys of nested objects ``field`` does not declare

    Values of any other shape are returned as they are and left for the
    schema to report.
    """
    if isinstance(field, fields.Nested) and isinstance(value, dict):
        declared = field.schema.fields
        return {key: prune(item, declared[key]) for key, item in value.items() if key in declared}
    if isinstance(field, fields.List) and isinstance(value, list):
        return [prune(item, field.inner) for item in value]
    return value


def flatten_errors(messages: Any, prefix: Optional[str] = None) -> Dict[str, str]:
    """
    Flatten marshmallow error messages to ``{dotted path: first message}``

    Errors raised by schema-level hooks without a field name are kept under
    ``_schema`` (or ``<group>._schema`` inside a nested group).
    """
    flat: Dict[str, str] = {}
    if isinstance(messages, Mapping):
        for key, value in messages.items():
            path = f'{prefix}.{key}' if prefix else str(key)
            for error_path, message in flatten_errors(value, path).items():
                flat.setdefault(error_path, message)
    elif isinstance(messages, (list, tuple)):
        for item in messages:
            for error_path, message in flatten_errors(item, prefix).items():
                flat.setdefault(error_path, message)
    elif messages is not None:
        flat[prefix or '_schema'] = str(messages)
    return flat


def error_root(path: str) -> str:
    """Top-level field name of a dotted error path"""
    return path.split('.', 1)[0]
