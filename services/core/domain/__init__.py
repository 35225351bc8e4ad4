# Domain Layer: pure rules, no sessions
from .goal_schema_rules import (
    is_blank,
    validate_goal_type_title,
    validate_field_definitions,
    validate_goal_fields,
    ensure_unique_keys,
    ensure_definition_belongs_to_type,
    ensure_required_value,
    ensure_required_answers_present,
    ensure_answer_deletable,
)
from .ownership import ensure_owner
