"""
Schema Validation Engine
========================

Cross-entity invariants between answers, field definitions and goal types:

1. every submitted fieldDefinitionId resolves (NotFoundError otherwise)
2. the definition belongs to the goal's type (ValidationError)
3. the resolved definition is attached server-side, client copies ignored
4. one answer per (goal, definition) (ConflictError)
5. required definitions need a non-blank value (ValidationError)
6. answers of required definitions cannot be deleted (ValidationError)

No persistence of its own: every call runs inside the caller's UnitOfWork.
"""
from dataclasses import dataclass
from typing import Iterable
from uuid import UUID

from domain.goal_schema_rules import (
    ensure_answer_deletable,
    ensure_definition_belongs_to_type,
    ensure_required_answers_present,
    ensure_required_value,
)
from exceptions import ConflictError, NotFoundError
from logging_config import get_logger
from models import CustomFieldDefinition, GoalType

logger = get_logger(__name__)


@dataclass
class ResolvedAnswer:
    """Submitted value bound to the definition resolved from the store"""
    definition: CustomFieldDefinition
    value: str | None


class SchemaValidationEngine:
    """Validation/resolution step invoked by GoalStore and CustomFieldAnswerStore"""

    async def resolve_definition(self, uow, field_definition_id: UUID, owner_user_id: str) -> CustomFieldDefinition:
        """
        Resolve one definition id.

        Definitions of another user's types are reported as missing.
        """
        resolved = await uow.field_definitions.get_many_with_owner(uow.session, [field_definition_id])
        entry = resolved.get(field_definition_id)
        if entry is None or entry[1] != owner_user_id:
            raise NotFoundError("CustomFieldDefinition", field_definition_id)
        return entry[0]

    async def resolve_goal_answers(
        self,
        uow,
        goal_type: GoalType,
        owner_user_id: str,
        submitted: Iterable,
    ) -> list[ResolvedAnswer]:
        """
        Resolve and check every answer of a goal payload, then make sure each
        required field of the type is covered.

        Args:
            goal_type: the (owner-verified) type the goal will have
            submitted: items with field_definition_id and value
        """
        submitted = list(submitted or [])

        seen = set()
        for item in submitted:
            if item.field_definition_id in seen:
                raise ConflictError(
                    message="Only one answer per custom field is allowed",
                    details={"field_definition_id": str(item.field_definition_id)}
                )
            seen.add(item.field_definition_id)

        definitions = await uow.field_definitions.get_many_with_owner(uow.session, seen)

        resolved = []
        for item in submitted:
            entry = definitions.get(item.field_definition_id)
            if entry is None or entry[1] != owner_user_id:
                raise NotFoundError("CustomFieldDefinition", item.field_definition_id)
            definition = entry[0]
            ensure_definition_belongs_to_type(definition, goal_type)
            ensure_required_value(definition, item.value)
            resolved.append(ResolvedAnswer(definition=definition, value=item.value))

        schema = await uow.field_definitions.list_for_type(uow.session, goal_type.id)
        ensure_required_answers_present(schema, {r.definition.id for r in resolved})

        logger.debug(
            "answers_resolved",
            goal_type_id=str(goal_type.id),
            answers=len(resolved)
        )
        return resolved

    async def revalidate_existing(self, uow, goal_type: GoalType, answer_pairs: list) -> None:
        """
        Goal moved to another type without an answer payload: the stored
        answers must fit the new type and cover its required fields.
        """
        for answer, definition in answer_pairs:
            ensure_definition_belongs_to_type(definition, goal_type)
            ensure_required_value(definition, answer.value)

        schema = await uow.field_definitions.list_for_type(uow.session, goal_type.id)
        ensure_required_answers_present(schema, {definition.id for _, definition in answer_pairs})

    async def validate_new_answer(
        self,
        uow,
        goal,
        goal_type: GoalType,
        field_definition_id: UUID,
        value: str | None,
        owner_user_id: str,
    ) -> CustomFieldDefinition:
        """Standalone answer creation (not part of a goal payload)"""
        definition = await self.resolve_definition(uow, field_definition_id, owner_user_id)
        ensure_definition_belongs_to_type(definition, goal_type)

        if await uow.answers.exists(uow.session, goal.id, definition.id):
            raise ConflictError(
                message="Answer for this custom field already exists. Use update instead.",
                details={
                    "goal_id": str(goal.id),
                    "field_definition_id": str(definition.id)
                }
            )

        ensure_required_value(definition, value)
        return definition

    def validate_answer_update(self, definition: CustomFieldDefinition, value: str | None) -> None:
        """Value replacement; fires against the definition's current flag"""
        ensure_required_value(definition, value)

    def guard_answer_deletion(self, definition: CustomFieldDefinition) -> None:
        ensure_answer_deletable(definition)


schema_validation_engine = SchemaValidationEngine()
