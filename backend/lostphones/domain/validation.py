"""Bridges pydantic validation into the domain error taxonomy."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from lostphones.domain.errors import FieldViolation, ValidationError

M = TypeVar("M", bound=BaseModel)

# Loose mobile number check: optional leading +, digits with spaces or dashes.
PHONE_PATTERN = r"^\+?[0-9][0-9 \-]{6,19}$"
USERNAME_PATTERN = r"^[A-Za-z0-9_]+$"
IMEI_PATTERN = r"^[0-9]{15}$"

_LOCATION_ROOTS = frozenset({"body", "query", "path", "form", "header"})
_VALUE_ERROR_PREFIX = "Value error, "


def _field_name(loc: Iterable[Any]) -> str:
    parts = [str(part) for part in loc if str(part) not in _LOCATION_ROOTS]
    return ".".join(parts) or "body"


def violations_from_errors(errors: Iterable[Mapping[str, Any]]) -> list[FieldViolation]:
    """Collapse pydantic error entries to one violation per field, in order."""
    seen: dict[str, FieldViolation] = {}
    for error in errors:
        field = _field_name(error.get("loc", ()))
        if field in seen:
            continue
        message = str(error.get("msg", "invalid"))
        if message.startswith(_VALUE_ERROR_PREFIX):
            message = message[len(_VALUE_ERROR_PREFIX) :]
        seen[field] = FieldViolation(field=field, message=message)
    return list(seen.values())


def validate(model: Type[M], data: Mapping[str, Any]) -> M:
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(violations_from_errors(exc.errors())) from exc
