"""
Goal Store
==========

Goals with their custom-field answers, scoped to the owning user.

A goal's type and parent must belong to the same user. Answers submitted with
the goal go through the SchemaValidationEngine before anything is written;
a failed check leaves no partial goal or answer behind.
"""
import uuid

from sqlalchemy.exc import IntegrityError

from domain.events import GoalDeleted, GoalSaved
from domain.goal_schema_rules import validate_goal_fields
from error_handler import store_operation
from exceptions import ConflictError, FieldViolation, NotFoundError, ValidationError
from infrastructure.pagination import resolve_order_by, validate_page
from logging_config import get_logger
from models import CustomFieldAnswer, Goal, GoalStatus, utcnow
from schemas import GoalRequest, GoalResponse, PageRequest, PageResponse
from services.goals.mappers import to_goal_response
from services.goals.schema_validation import schema_validation_engine

logger = get_logger(__name__)


class GoalStore:

    def __init__(self, uow_provider, validation=None):
        self._uow_provider = uow_provider
        self._validation = validation or schema_validation_engine

    @store_operation("goal.create")
    async def create(self, owner_user_id: str, request: GoalRequest) -> GoalResponse:
        validate_goal_fields(request.title, request.description)

        async with self._uow_provider() as uow:
            goal_type = await self._get_type(uow, request.type_id, owner_user_id)
            if request.parent_goal_id is not None:
                await self._get_parent(uow, request.parent_goal_id, owner_user_id)

            resolved = await self._validation.resolve_goal_answers(
                uow, goal_type, owner_user_id, request.custom_answers
            )

            now = utcnow()
            goal = Goal(
                id=uuid.uuid4(),
                owner_user_id=owner_user_id,
                title=request.title.strip(),
                description=request.description,
                type_id=goal_type.id,
                status=GoalStatus(request.status).value,
                parent_id=request.parent_goal_id,
                created_at=now,
                updated_at=now,
            )
            await uow.goals.save(uow.session, goal)

            pairs = await self._write_answers(uow, goal, resolved)

            uow.collect(GoalSaved(
                owner_user_id=owner_user_id,
                goal_id=str(goal.id),
                goal_type_id=str(goal_type.id),
                created=True
            ))
            response = to_goal_response(goal, goal_type, pairs)

        logger.info(
            "goal_created",
            goal_id=str(goal.id),
            goal_type_id=str(goal_type.id),
            owner_user_id=owner_user_id,
            answers=len(pairs)
        )
        return response

    @store_operation("goal.update")
    async def update(self, goal_id, owner_user_id: str, request: GoalRequest) -> GoalResponse:
        """
        Full replacement of goal fields.

        custom_answers=None keeps the stored answers; they are re-checked only
        when the goal moves to another type. A list, even an empty one,
        replaces them.
        """
        validate_goal_fields(request.title, request.description)

        async with self._uow_provider() as uow:
            goal = await uow.goals.get_owned_for_update(uow.session, goal_id, owner_user_id)
            if goal is None:
                raise NotFoundError("Goal", goal_id)

            goal_type = await self._get_type(uow, request.type_id, owner_user_id)
            if request.parent_goal_id is not None:
                await self._ensure_valid_parent(uow, goal, request.parent_goal_id, owner_user_id)

            if request.custom_answers is None:
                existing = await uow.answers.list_for_goals(uow.session, [goal.id])
                pairs = existing[goal.id]
                if goal_type.id != goal.type_id:
                    await self._validation.revalidate_existing(uow, goal_type, pairs)
            else:
                resolved = await self._validation.resolve_goal_answers(
                    uow, goal_type, owner_user_id, request.custom_answers
                )
                await uow.answers.delete_for_goals(uow.session, [goal.id])
                pairs = await self._write_answers(uow, goal, resolved)

            goal.title = request.title.strip()
            goal.description = request.description
            goal.type_id = goal_type.id
            goal.status = GoalStatus(request.status).value
            goal.parent_id = request.parent_goal_id
            goal.updated_at = utcnow()
            await uow.session.flush()

            uow.collect(GoalSaved(
                owner_user_id=owner_user_id,
                goal_id=str(goal.id),
                goal_type_id=str(goal_type.id),
                created=False
            ))
            response = to_goal_response(goal, goal_type, pairs)

        logger.info("goal_updated", goal_id=str(goal_id), answers=len(pairs))
        return response

    @store_operation("goal.delete")
    async def delete(self, goal_id, owner_user_id: str) -> None:
        """Deletes the goal, its sub-goals and all of their answers"""
        async with self._uow_provider() as uow:
            goal = await uow.goals.get_owned_for_update(uow.session, goal_id, owner_user_id)
            if goal is None:
                raise NotFoundError("Goal", goal_id)

            goal_ids = await uow.goals.collect_subtree_ids(uow.session, [goal.id], owner_user_id)
            removed_answers = await uow.answers.delete_for_goals(uow.session, goal_ids)
            deleted_goals = await uow.goals.delete_many(uow.session, goal_ids)

            uow.collect(GoalDeleted(
                owner_user_id=owner_user_id,
                goal_id=str(goal_id),
                deleted_goals=deleted_goals
            ))

        logger.info(
            "goal_deleted",
            goal_id=str(goal_id),
            deleted_goals=deleted_goals,
            removed_answers=removed_answers
        )

    @store_operation("goal.get")
    async def get(self, goal_id, owner_user_id: str) -> GoalResponse:
        async with self._uow_provider() as uow:
            goal = await uow.goals.get_owned(uow.session, goal_id, owner_user_id)
            if goal is None:
                raise NotFoundError("Goal", goal_id)
            goal_type = await self._get_type(uow, goal.type_id, owner_user_id)
            answers = await uow.answers.list_for_goals(uow.session, [goal.id])
            return to_goal_response(goal, goal_type, answers[goal.id])

    @store_operation("goal.list")
    async def list(
        self,
        owner_user_id: str,
        page_request: PageRequest | None = None,
        status: GoalStatus | None = None,
        type_id=None,
    ) -> PageResponse[GoalResponse]:
        """Default order: createdAt descending. Optional status / type filters."""
        page_request = page_request or PageRequest()
        validate_page(page_request)
        order_by = resolve_order_by(Goal, page_request, "created_at", "desc")
        status_value = GoalStatus(status).value if status is not None else None

        async with self._uow_provider() as uow:
            total = await uow.goals.count(uow.session, owner_user_id, status=status_value, type_id=type_id)
            goals = await uow.goals.page(
                uow.session,
                owner_user_id,
                order_by,
                offset=page_request.page * page_request.size,
                limit=page_request.size,
                status=status_value,
                type_id=type_id
            )
            goal_types = await uow.goal_types.get_many_owned(
                uow.session, {g.type_id for g in goals}, owner_user_id
            )
            answers = await uow.answers.list_for_goals(uow.session, [g.id for g in goals])
            content = [to_goal_response(g, goal_types[g.type_id], answers[g.id]) for g in goals]

        return PageResponse[GoalResponse].of(content, total, page_request.page, page_request.size)

    async def _get_type(self, uow, type_id, owner_user_id):
        goal_type = await uow.goal_types.get_owned(uow.session, type_id, owner_user_id)
        if goal_type is None:
            raise NotFoundError("GoalType", type_id)
        return goal_type

    async def _get_parent(self, uow, parent_id, owner_user_id):
        parent = await uow.goals.get_owned(uow.session, parent_id, owner_user_id)
        if parent is None:
            raise NotFoundError("Goal", parent_id)
        return parent

    async def _ensure_valid_parent(self, uow, goal, parent_id, owner_user_id) -> None:
        """The new parent must exist for the owner and not sit inside the goal's own subtree"""
        parent = await self._get_parent(uow, parent_id, owner_user_id)

        ancestor_id = parent.id
        visited = set()
        while ancestor_id is not None and ancestor_id not in visited:
            if ancestor_id == goal.id:
                raise ValidationError(
                    "A goal cannot be its own ancestor",
                    violations=[FieldViolation("parentGoalId", "Would create a cycle", str(parent_id))]
                )
            visited.add(ancestor_id)
            ancestor_id = await uow.goals.parent_id_of(uow.session, ancestor_id, owner_user_id)

    async def _write_answers(self, uow, goal, resolved) -> list:
        """Insert resolved answers; returns (answer, definition) pairs ordered by key"""
        answers = [
            CustomFieldAnswer(
                id=uuid.uuid4(),
                goal_id=goal.id,
                field_definition_id=item.definition.id,
                value=item.value,
            )
            for item in resolved
        ]
        if answers:
            try:
                await uow.answers.save_all(uow.session, answers)
            except IntegrityError as e:
                raise ConflictError(
                    message="Only one answer per custom field is allowed",
                    details={"goal_id": str(goal.id)}
                ) from e

        pairs = list(zip(answers, [item.definition for item in resolved]))
        return sorted(pairs, key=lambda pair: pair[1].key)
