"""
Goal Schema Rules - Чистый доменный слой
========================================
Никаких session, commit, async, логов, side-effects.
Только правила схемы пользовательских полей и инварианты.
"""
import re
from typing import Any, Iterable

from config import (
    GOAL_TYPE_TITLE_MAX_LENGTH,
    GOAL_TITLE_MAX_LENGTH,
    GOAL_DESCRIPTION_MAX_LENGTH,
    FIELD_KEY_MAX_LENGTH,
    FIELD_LABEL_MAX_LENGTH,
    FIELD_KEY_PATTERN,
)
from exceptions import ConflictError, FieldViolation, ValidationError

_KEY_RE = re.compile(FIELD_KEY_PATTERN)


def is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def _raise_if_violations(message: str, violations: list[FieldViolation]) -> None:
    if violations:
        raise ValidationError(message, violations=violations)


def validate_goal_type_title(title: str | None) -> None:
    """Title is required and bounded"""
    violations = []
    if is_blank(title):
        violations.append(FieldViolation("title", "Title is required", title))
    elif len(title) > GOAL_TYPE_TITLE_MAX_LENGTH:
        violations.append(FieldViolation(
            "title",
            f"Title must not exceed {GOAL_TYPE_TITLE_MAX_LENGTH} characters",
            title
        ))
    _raise_if_violations("Input validation failed", violations)


def _definition_violations(definition: Any, prefix: str) -> list[FieldViolation]:
    violations = []
    key = definition.key
    if is_blank(key):
        violations.append(FieldViolation(f"{prefix}key", "Field key is required", key))
    elif len(key) > FIELD_KEY_MAX_LENGTH:
        violations.append(FieldViolation(
            f"{prefix}key",
            f"Field key must not exceed {FIELD_KEY_MAX_LENGTH} characters",
            key
        ))
    elif not _KEY_RE.match(key):
        violations.append(FieldViolation(
            f"{prefix}key",
            "Key must be snake_case (lowercase, numbers, underscores)",
            key
        ))

    label = definition.label
    if is_blank(label):
        violations.append(FieldViolation(f"{prefix}label", "Field label is required", label))
    elif len(label) > FIELD_LABEL_MAX_LENGTH:
        violations.append(FieldViolation(
            f"{prefix}label",
            f"Field label must not exceed {FIELD_LABEL_MAX_LENGTH} characters",
            label
        ))
    return violations


def validate_field_definitions(definitions: Iterable[Any], prefix: str = "customFields") -> None:
    """
    Validate submitted field definitions (key pattern, label).

    prefix="" validates a single standalone definition.
    """
    violations = []
    for index, definition in enumerate(definitions):
        item_prefix = f"{prefix}[{index}]." if prefix else ""
        violations.extend(_definition_violations(definition, item_prefix))
    _raise_if_violations("Input validation failed", violations)


def ensure_unique_keys(definitions: Iterable[Any]) -> None:
    """Keys must be pairwise distinct within one goal type"""
    seen = set()
    duplicates = []
    for definition in definitions:
        if definition.key in seen and definition.key not in duplicates:
            duplicates.append(definition.key)
        seen.add(definition.key)
    if duplicates:
        raise ConflictError(
            message=f"Custom field key already exists: {', '.join(duplicates)}",
            details={"keys": duplicates}
        )


def validate_goal_fields(title: str | None, description: str | None) -> None:
    violations = []
    if is_blank(title):
        violations.append(FieldViolation("title", "Title is required", title))
    elif len(title) > GOAL_TITLE_MAX_LENGTH:
        violations.append(FieldViolation(
            "title",
            f"Title must not exceed {GOAL_TITLE_MAX_LENGTH} characters",
            title
        ))
    if description is not None and len(description) > GOAL_DESCRIPTION_MAX_LENGTH:
        violations.append(FieldViolation(
            "description",
            f"Description must not exceed {GOAL_DESCRIPTION_MAX_LENGTH} characters",
            None
        ))
    _raise_if_violations("Input validation failed", violations)


def ensure_definition_belongs_to_type(definition, goal_type) -> None:
    """
    Answer-to-definition-to-type consistency.

    Raises:
        ValidationError: definition.goal_type_id != goal_type.id
    """
    if definition.goal_type_id != goal_type.id:
        raise ValidationError(
            f"Custom field '{definition.label}' does not belong to goal type '{goal_type.title}'",
            violations=[FieldViolation(
                "fieldDefinitionId",
                "Field does not belong to this goal's type",
                str(definition.id)
            )],
            details={
                "field_definition_id": str(definition.id),
                "field_label": definition.label,
                "goal_type_id": str(goal_type.id),
                "goal_type_title": goal_type.title
            }
        )


def ensure_required_value(definition, value: str | None) -> None:
    if definition.required and is_blank(value):
        raise ValidationError(
            f"Value is required for field: {definition.label}",
            violations=[FieldViolation(definition.key, f"Value is required for field: {definition.label}", value)],
            details={"field_key": definition.key, "field_label": definition.label}
        )


def ensure_required_answers_present(definitions: Iterable[Any], answered_definition_ids: set) -> None:
    """Every required definition of the goal's type needs an answer"""
    missing = [d for d in definitions if d.required and d.id not in answered_definition_ids]
    if missing:
        raise ValidationError(
            "Value is required for field: " + ", ".join(d.label for d in missing),
            violations=[
                FieldViolation(d.key, f"Value is required for field: {d.label}", None)
                for d in missing
            ],
            details={"missing_keys": [d.key for d in missing]}
        )


def ensure_answer_deletable(definition) -> None:
    """Required answers leave only with their goal or their definition"""
    if definition.required:
        raise ValidationError(
            f"Cannot delete answer for required field: {definition.label}",
            details={"field_key": definition.key, "field_label": definition.label}
        )
