"""
Entity -> response mapping.

Answers are denormalized with key/label/type only here, at read time.
"""
from schemas import (
    CustomFieldAnswerResponse,
    CustomFieldDefinitionResponse,
    GoalResponse,
    GoalTypeResponse,
)


def to_definition_response(definition) -> CustomFieldDefinitionResponse:
    return CustomFieldDefinitionResponse.model_validate(definition)


def to_goal_type_response(goal_type, definitions) -> GoalTypeResponse:
    return GoalTypeResponse(
        id=goal_type.id,
        title=goal_type.title,
        level_number=goal_type.level_number,
        custom_fields=[to_definition_response(d) for d in definitions],
        created_at=goal_type.created_at,
        updated_at=goal_type.updated_at,
    )


def to_answer_response(answer, definition) -> CustomFieldAnswerResponse:
    return CustomFieldAnswerResponse(
        id=answer.id,
        goal_id=answer.goal_id,
        field_definition_id=definition.id,
        field_key=definition.key,
        field_label=definition.label,
        field_type=definition.type,
        required=definition.required,
        value=answer.value,
    )


def to_goal_response(goal, goal_type, answer_pairs) -> GoalResponse:
    return GoalResponse(
        id=goal.id,
        title=goal.title,
        description=goal.description,
        type_id=goal_type.id,
        type_title=goal_type.title,
        level_number=goal_type.level_number,
        status=goal.status,
        parent_goal_id=goal.parent_id,
        user_id=goal.owner_user_id,
        custom_answers=[to_answer_response(a, d) for a, d in answer_pairs],
        created_at=goal.created_at,
        updated_at=goal.updated_at,
    )
