"""
Field factories shared by the ASAM and intake step schemas

Form values travel as JSON, so every field validates the wire value as-is:
free text is a string, checkboxes are booleans, dates are ``YYYY-MM-DD``
strings and grouped checkboxes are small objects.
"""

import datetime
from typing import Any, Dict, Optional

from dateutil import parser as date_parser
from marshmallow import EXCLUDE, Schema, fields, validate

from .severity import SEVERITY_MAX, SEVERITY_MIN, severity_choices

DATE_FORMAT = '%Y-%m-%d'


class IsoDate(fields.String):
    """A ``YYYY-MM-DD`` string; the empty string means "not filled in" """

    default_error_messages = {'invalid_date': 'Not a valid date (YYYY-MM-DD).'}

    def _deserialize(self, value, attr, data, **kwargs):
        value = super()._deserialize(value, attr, data, **kwargs)
        if value:
            try:
                datetime.datetime.strptime(value, DATE_FORMAT)
            except ValueError as e:
                raise self.make_error('invalid_date') from e
        return value


def normalize_date(value: Any) -> Optional[str]:
    """
    Normalize a stored date to ``YYYY-MM-DD``

    Accepts dates, datetimes and ISO strings, including full timestamps as
    returned by the records store. Aware timestamps are converted to UTC
    first. Returns ``''`` for empty input and ``None`` when the value cannot
    be read as a date.
    """
    if value is None or value == '':
        return ''
    if isinstance(value, datetime.datetime):
        parsed = value
    elif isinstance(value, datetime.date):
        return value.strftime(DATE_FORMAT)
    elif isinstance(value, str):
        try:
            parsed = date_parser.isoparse(value.strip())
        except (ValueError, OverflowError):
            return None
    else:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(datetime.timezone.utc)
    return parsed.strftime(DATE_FORMAT)


def text(**kwargs) -> fields.String:
    return fields.String(allow_none=True, **kwargs)


def flag(**kwargs) -> fields.Boolean:
    return fields.Boolean(allow_none=True, **kwargs)


def date(**kwargs) -> IsoDate:
    return IsoDate(allow_none=True, **kwargs)


def required_text(message: str, min_length: int = 1) -> fields.String:
    """
    A string that must be present and at least ``min_length`` characters long

    With ``min_length=0`` the key must be present but may be blank, as for the
    name column of a freshly added repeated-group row.
    """
    return fields.String(
        required=True,
        validate=validate.Length(min=min_length, error=message) if min_length else None,
        error_messages={'required': message, 'null': message},
    )


def required_date(message: str) -> IsoDate:
    return IsoDate(
        required=True,
        validate=validate.Length(min=1, error=message),
        error_messages={'required': message, 'null': message},
    )


def optional_email(value: Optional[str]) -> None:
    """Validator accepting a valid e-mail address or nothing at all"""
    if value:
        validate.Email(error='Invalid email address')(value)


def severity_rating(**kwargs) -> fields.Integer:
    """Dimension severity, 0-4; the select options travel with the field as ``choices``"""
    return fields.Integer(
        allow_none=True,
        validate=validate.Range(
            min=SEVERITY_MIN,
            max=SEVERITY_MAX,
            error=f'Severity rating must be between {SEVERITY_MIN} and {SEVERITY_MAX}',
        ),
        metadata={'choices': severity_choices()},
        **kwargs,
    )


class FormGroupSchema(Schema):
    """
    Base of the nested schemas of grouped and repeated fields

    Keys a group does not declare are left out when the form is validated, so
    a draft saved against an older layout of the form can still move forward.
    Form access resolves paths against the declared fields only.
    """

    class Meta:
        unknown = EXCLUDE


def group(name: str, members: Dict[str, fields.Field], **kwargs) -> fields.Nested:
    """Grouped object such as a checkbox group, stored under one form field"""
    kwargs.setdefault('allow_none', True)
    return fields.Nested(FormGroupSchema.from_dict(members, name=name), **kwargs)


def rows(name: str, members: Dict[str, fields.Field]) -> fields.List:
    """Repeated group: a list of objects that all share ``members``"""
    return fields.List(fields.Nested(FormGroupSchema.from_dict(members, name=name)), allow_none=True)


def checkboxes(name: str, *flags: str, **extra: fields.Field) -> fields.Nested:
    members = {key: flag() for key in flags}
    members.update(extra)
    return group(name, members)

