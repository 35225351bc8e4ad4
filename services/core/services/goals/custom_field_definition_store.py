"""
Custom Field Definition Store

CRUD over field definitions scoped to a goal type. Key uniqueness inside one
type is pre-checked here and finally enforced by the
(goal_type_id, key) unique constraint.
"""
import uuid

from sqlalchemy.exc import IntegrityError

from domain.goal_schema_rules import validate_field_definitions
from domain.ownership import ensure_owner
from error_handler import store_operation
from exceptions import ConflictError, NotFoundError
from logging_config import get_logger
from models import CustomFieldDefinition
from schemas import CustomFieldDefinitionRequest, CustomFieldDefinitionResponse
from services.goals.mappers import to_definition_response

logger = get_logger(__name__)


def key_conflict(key: str, goal_type_id) -> ConflictError:
    return ConflictError(
        message=f"Custom field key already exists: {key}",
        details={"key": key, "goal_type_id": str(goal_type_id)}
    )


def build_definition(goal_type_id, request: CustomFieldDefinitionRequest) -> CustomFieldDefinition:
    return CustomFieldDefinition(
        id=uuid.uuid4(),
        goal_type_id=goal_type_id,
        key=request.key,
        label=request.label.strip(),
        type=request.type.value,
        required=request.required,
        placeholder=request.placeholder,
    )


async def flush_definitions(uow, definitions, goal_type_id) -> None:
    """
    Persist definitions; the unique constraint is the final arbiter when a
    concurrent writer slipped past the pre-check.
    """
    uow.session.add_all(definitions)
    try:
        await uow.session.flush()
    except IntegrityError as e:
        keys = ", ".join(d.key for d in definitions)
        raise key_conflict(keys, goal_type_id) from e


class CustomFieldDefinitionStore:

    def __init__(self, uow_provider):
        self._uow_provider = uow_provider

    @store_operation("custom_field_definition.create")
    async def create(self, goal_type_id, owner_user_id: str, request: CustomFieldDefinitionRequest) -> CustomFieldDefinitionResponse:
        validate_field_definitions([request], prefix="")

        async with self._uow_provider() as uow:
            goal_type = await uow.goal_types.get_owned(uow.session, goal_type_id, owner_user_id)
            if goal_type is None:
                raise NotFoundError("GoalType", goal_type_id)

            if await uow.field_definitions.key_taken(uow.session, goal_type.id, request.key):
                raise key_conflict(request.key, goal_type.id)

            definition = build_definition(goal_type.id, request)
            await flush_definitions(uow, [definition], goal_type.id)
            response = to_definition_response(definition)

        logger.info(
            "custom_field_definition_created",
            definition_id=str(definition.id),
            goal_type_id=str(goal_type_id),
            key=definition.key
        )
        return response

    @store_operation("custom_field_definition.update")
    async def update(self, definition_id, owner_user_id: str, request: CustomFieldDefinitionRequest) -> CustomFieldDefinitionResponse:
        validate_field_definitions([request], prefix="")

        async with self._uow_provider() as uow:
            definition = await self._get_checked(uow, definition_id, owner_user_id, action="modify")

            if request.key != definition.key:
                if await uow.field_definitions.key_taken(
                    uow.session, definition.goal_type_id, request.key, exclude_id=definition.id
                ):
                    raise key_conflict(request.key, definition.goal_type_id)

            # goal_type_id is immutable; everything else follows the request
            definition.key = request.key
            definition.label = request.label.strip()
            definition.type = request.type.value
            definition.required = request.required
            definition.placeholder = request.placeholder
            try:
                await uow.session.flush()
            except IntegrityError as e:
                raise key_conflict(request.key, definition.goal_type_id) from e
            response = to_definition_response(definition)

        logger.info("custom_field_definition_updated", definition_id=str(definition_id))
        return response

    @store_operation("custom_field_definition.get")
    async def get(self, definition_id, owner_user_id: str) -> CustomFieldDefinitionResponse:
        async with self._uow_provider() as uow:
            definition = await self._get_checked(uow, definition_id, owner_user_id, conceal=True)
            return to_definition_response(definition)

    @store_operation("custom_field_definition.list")
    async def list_for_type(self, goal_type_id, owner_user_id: str) -> list[CustomFieldDefinitionResponse]:
        async with self._uow_provider() as uow:
            goal_type = await uow.goal_types.get_owned(uow.session, goal_type_id, owner_user_id)
            if goal_type is None:
                raise NotFoundError("GoalType", goal_type_id)
            definitions = await uow.field_definitions.list_for_type(uow.session, goal_type.id)
            return [to_definition_response(d) for d in definitions]

    @store_operation("custom_field_definition.delete")
    async def delete(self, definition_id, owner_user_id: str) -> None:
        """
        Unconditional: the schema owner controls the schema, so existing
        answers (required or not) go away with their definition.
        """
        async with self._uow_provider() as uow:
            definition = await self._get_checked(uow, definition_id, owner_user_id, action="delete")
            removed_answers = await uow.answers.delete_for_definitions(uow.session, [definition.id])
            await uow.field_definitions.delete_many(uow.session, [definition.id])

        logger.info(
            "custom_field_definition_deleted",
            definition_id=str(definition_id),
            removed_answers=removed_answers
        )

    async def _get_checked(self, uow, definition_id, owner_user_id, action="access", conceal=False):
        """Owner-agnostic lookup, then ownership through the parent type"""
        found = await uow.field_definitions.get_with_owner(uow.session, definition_id)
        if found is None:
            raise NotFoundError("CustomFieldDefinition", definition_id)
        definition, goal_type = found
        ensure_owner(
            "CustomFieldDefinition",
            definition_id,
            goal_type.owner_user_id,
            owner_user_id,
            action=action,
            conceal=conceal
        )
        return definition
