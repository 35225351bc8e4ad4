"""
Pagination and sort resolution for owner-scoped listings.

Sort keys are entity attribute names, accepted in camelCase or snake_case.
"""
from sqlalchemy import inspect
from pydantic.alias_generators import to_camel

from config import MAX_PAGE_SIZE
from exceptions import FieldViolation, ValidationError
from schemas import PageRequest

DIRECTIONS = {"asc", "desc"}


def sortable_attributes(model) -> dict:
    """attribute name (snake and camel) -> mapped column attribute"""
    attributes = {}
    for column_attr in inspect(model).column_attrs:
        attribute = getattr(model, column_attr.key)
        attributes[column_attr.key] = attribute
        attributes[to_camel(column_attr.key)] = attribute
    return attributes


def validate_page(page_request: PageRequest) -> None:
    violations = []
    if page_request.page < 0:
        violations.append(FieldViolation("page", "Page number must be at least 0", page_request.page))
    if page_request.size < 1 or page_request.size > MAX_PAGE_SIZE:
        violations.append(FieldViolation(
            "size",
            f"Page size must be between 1 and {MAX_PAGE_SIZE}",
            page_request.size
        ))
    if violations:
        raise ValidationError("Invalid page request", violations=violations)


def resolve_order_by(model, page_request: PageRequest, default_sort: str, default_direction: str) -> list:
    """
    Build ORDER BY clauses.

    Without sort_by the entity default applies (goal types: levelNumber asc,
    goals: createdAt desc). The primary key is appended as a tiebreaker so
    pages are stable.
    """
    attributes = sortable_attributes(model)

    if page_request.sort_by:
        sort_by = page_request.sort_by
        direction = (page_request.direction or "asc").lower()
    else:
        sort_by = default_sort
        direction = (page_request.direction or default_direction).lower()

    violations = []
    if sort_by not in attributes:
        violations.append(FieldViolation("sortBy", f"Unknown sort attribute: {sort_by}", sort_by))
    if direction not in DIRECTIONS:
        violations.append(FieldViolation("direction", "Direction must be 'asc' or 'desc'", page_request.direction))
    if violations:
        raise ValidationError("Invalid sort request", violations=violations)

    column = attributes[sort_by]
    primary = column.asc() if direction == "asc" else column.desc()
    clauses = [primary]
    if sort_by != "id":
        clauses.append(model.id.asc())
    return clauses
