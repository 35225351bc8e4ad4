"""
Custom Field Answer Store

Standalone answer CRUD. Answers created together with a goal go through
GoalStore instead; both paths share the SchemaValidationEngine.
"""
import uuid

from sqlalchemy.exc import IntegrityError

from domain.ownership import ensure_owner
from error_handler import store_operation
from exceptions import ConflictError, NotFoundError
from logging_config import get_logger
from models import CustomFieldAnswer
from schemas import CustomFieldAnswerRequest, CustomFieldAnswerResponse, CustomFieldAnswerUpdateRequest
from services.goals.mappers import to_answer_response
from services.goals.schema_validation import schema_validation_engine

logger = get_logger(__name__)


class CustomFieldAnswerStore:

    def __init__(self, uow_provider, validation=None):
        self._uow_provider = uow_provider
        self._validation = validation or schema_validation_engine

    @store_operation("custom_field_answer.create")
    async def create(self, goal_id, owner_user_id: str, request: CustomFieldAnswerRequest) -> CustomFieldAnswerResponse:
        async with self._uow_provider() as uow:
            goal = await uow.goals.get_owned(uow.session, goal_id, owner_user_id)
            if goal is None:
                raise NotFoundError("Goal", goal_id)
            goal_type = await uow.goal_types.get_owned(uow.session, goal.type_id, owner_user_id)
            if goal_type is None:
                raise NotFoundError("GoalType", goal.type_id)

            definition = await self._validation.validate_new_answer(
                uow, goal, goal_type, request.field_definition_id, request.value, owner_user_id
            )

            answer = CustomFieldAnswer(
                id=uuid.uuid4(),
                goal_id=goal.id,
                field_definition_id=definition.id,
                value=request.value,
            )
            try:
                await uow.answers.save(uow.session, answer)
            except IntegrityError as e:
                raise ConflictError(
                    message="Answer for this custom field already exists. Use update instead.",
                    details={"goal_id": str(goal.id), "field_definition_id": str(definition.id)}
                ) from e
            response = to_answer_response(answer, definition)

        logger.info(
            "custom_field_answer_created",
            answer_id=str(answer.id),
            goal_id=str(goal_id),
            field_key=definition.key
        )
        return response

    @store_operation("custom_field_answer.update")
    async def update(self, answer_id, owner_user_id: str, request: CustomFieldAnswerUpdateRequest) -> CustomFieldAnswerResponse:
        """Only the value changes; goal and definition are fixed"""
        async with self._uow_provider() as uow:
            answer, definition = await self._get_checked(uow, answer_id, owner_user_id, action="modify")
            self._validation.validate_answer_update(definition, request.value)
            answer.value = request.value
            await uow.session.flush()
            response = to_answer_response(answer, definition)

        logger.info("custom_field_answer_updated", answer_id=str(answer_id))
        return response

    @store_operation("custom_field_answer.get")
    async def get(self, answer_id, owner_user_id: str) -> CustomFieldAnswerResponse:
        async with self._uow_provider() as uow:
            answer, definition = await self._get_checked(uow, answer_id, owner_user_id, conceal=True)
            return to_answer_response(answer, definition)

    @store_operation("custom_field_answer.list")
    async def list_for_goal(self, goal_id, owner_user_id: str) -> list[CustomFieldAnswerResponse]:
        async with self._uow_provider() as uow:
            goal = await uow.goals.get_owned(uow.session, goal_id, owner_user_id)
            if goal is None:
                raise NotFoundError("Goal", goal_id)
            answers = await uow.answers.list_for_goals(uow.session, [goal.id])
            return [to_answer_response(a, d) for a, d in answers[goal.id]]

    @store_operation("custom_field_answer.delete")
    async def delete(self, answer_id, owner_user_id: str) -> None:
        async with self._uow_provider() as uow:
            answer, definition = await self._get_checked(uow, answer_id, owner_user_id, action="delete")
            self._validation.guard_answer_deletion(definition)
            await uow.answers.delete(uow.session, answer)

        logger.info("custom_field_answer_deleted", answer_id=str(answer_id), field_key=definition.key)

    async def _get_checked(self, uow, answer_id, owner_user_id, action="access", conceal=False):
        """Ownership is resolved through the answer's goal"""
        found = await uow.answers.get_with_context(uow.session, answer_id)
        if found is None:
            raise NotFoundError("CustomFieldAnswer", answer_id)
        answer, definition, goal = found
        ensure_owner(
            "CustomFieldAnswer",
            answer_id,
            goal.owner_user_id,
            owner_user_id,
            action=action,
            conceal=conceal
        )
        return answer, definition
