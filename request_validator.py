# request_validator.py
"""
Schema validation for inbound OAuth parameters.

Errors from every independent field are collected so a single
``invalid_request`` response can describe all of them at once.
"""
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)

FieldError = Tuple[str, str]


@dataclass
class ValidationOutcome:
    value: Optional[BaseModel] = None
    errors: List[FieldError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.value is not None and not self.errors


def _error_path(loc) -> str:
    return ".".join(str(part) for part in loc)


def validate_request(model: Type[ModelT], raw: Any) -> ValidationOutcome:
    if not isinstance(raw, Mapping):
        return ValidationOutcome(errors=[("body", "Expected an object")])
    try:
        return ValidationOutcome(value=model.model_validate(dict(raw)))
    except ValidationError as e:
        return ValidationOutcome(errors=[(_error_path(err["loc"]), err["msg"]) for err in e.errors()])


def format_errors(errors: List[FieldError]) -> str:
    return ", ".join(f"{path}: {message}" if path else message for path, message in errors)
