"""
Validation contracts shared by the store and external validators.

The store never knows the application's schema. It only calls a validator
and reads back a :class:`ValidationResult`; failures are logged as warnings
and never block a write.

Two ways to plug a schema in:

1. Any callable ``validate(tree) -> ValidationResult`` (or a mapping with an
   ``isValid``/``is_valid`` flag and an ``errors`` list).
2. :class:`ModelValidator`, which wraps a Pydantic model class and turns its
   ``ValidationError`` locations into dotted paths.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class ValidationIssue(BaseModel):
    """One failed check, addressed by dotted path."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(description="Dotted path of the offending value ('' for the root).")
    message: str = Field(description="Human-readable explanation.")


class ValidationResult(BaseModel):
    """Verdict returned by a validator.

    Fields
    ------
    is_valid : bool
        True when no issues were found. Accepts ``isValid`` on input.
    errors : list[ValidationIssue]
        Issues in discovery order.
    """

    model_config = ConfigDict(populate_by_name=True)

    is_valid: bool = Field(default=True, alias="isValid")
    errors: list[ValidationIssue] = Field(default_factory=list)

    @classmethod
    def ok(cls) -> ValidationResult:
        return cls(is_valid=True, errors=[])

    @classmethod
    def from_errors(cls, errors: list[ValidationIssue]) -> ValidationResult:
        return cls(is_valid=not errors, errors=errors)


Validator: TypeAlias = Callable[[Any], "ValidationResult | Mapping[str, Any]"]


def looks_like_validation_result(value: Any) -> bool:
    """Return True for a validation verdict mistakenly offered as state.

    Matches :class:`ValidationResult` instances and mappings that carry both
    an ``errors`` list and an ``isValid``/``is_valid`` flag.
    """
    if isinstance(value, ValidationResult):
        return True
    if not isinstance(value, Mapping):
        return False
    return isinstance(value.get("errors"), list) and ("isValid" in value or "is_valid" in value)


def coerce_result(raw: ValidationResult | Mapping[str, Any]) -> ValidationResult:
    """Normalize whatever a validator returned into a :class:`ValidationResult`."""
    if isinstance(raw, ValidationResult):
        return raw
    return ValidationResult.model_validate(dict(raw))


def _loc_to_path(loc: tuple[int | str, ...]) -> str:
    return ".".join(str(part) for part in loc)


class ModelValidator:
    """Validator backed by a Pydantic model describing the settings tree.

    Example
    -------
    >>> class Theme(BaseModel):
    ...     dark: bool = False
    >>> class AppSettings(BaseModel):
    ...     theme: Theme = Theme()
    >>> ModelValidator(AppSettings)({"theme": {"dark": "nope"}}).errors[0].path
    'theme.dark'
    """

    def __init__(self, model: type[BaseModel]) -> None:
        self.model = model

    def __call__(self, tree: Any) -> ValidationResult:
        try:
            self.model.model_validate(tree)
        except ValidationError as exc:
            issues = [
                ValidationIssue(path=_loc_to_path(tuple(e["loc"])), message=e["msg"])
                for e in exc.errors()
            ]
            return ValidationResult.from_errors(issues)
        return ValidationResult.ok()

    def defaults(self) -> dict[str, Any]:
        """Default tree for the model, usable as a store default provider."""
        return self.model().model_dump()


__all__ = [
    "ModelValidator",
    "ValidationIssue",
    "ValidationResult",
    "Validator",
    "coerce_result",
    "looks_like_validation_result",
]
