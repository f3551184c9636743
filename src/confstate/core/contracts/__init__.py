"""Pydantic contracts exchanged with external collaborators."""

from __future__ import annotations

from .validation import (
    ModelValidator,
    ValidationIssue,
    ValidationResult,
    Validator,
    coerce_result,
    looks_like_validation_result,
)

__all__ = [
    "ModelValidator",
    "ValidationIssue",
    "ValidationResult",
    "Validator",
    "coerce_result",
    "looks_like_validation_result",
]
