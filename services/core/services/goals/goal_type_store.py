"""
Goal Type Store
===============

Owner-scoped goal types with their embedded field definitions.

Level numbers are never taken from the client: create appends at
max + 1, delete compacts everything above the removed level. Both run
under the owner's level lock, so concurrent create/delete for one owner
can't leave gaps or duplicates.
"""
import uuid

from sqlalchemy.exc import IntegrityError

from domain.events import GoalTypeCreated, GoalTypeDeleted
from domain.goal_schema_rules import (
    ensure_unique_keys,
    validate_field_definitions,
    validate_goal_type_title,
)
from error_handler import store_operation
from exceptions import ConflictError, NotFoundError, TransientStoreError
from infrastructure.pagination import resolve_order_by, validate_page
from logging_config import get_logger
from models import GoalType, utcnow
from schemas import GoalTypeRequest, GoalTypeResponse, PageRequest, PageResponse
from services.goals.custom_field_definition_store import (
    build_definition,
    flush_definitions,
    key_conflict,
)
from services.goals.level_renumbering import level_renumbering_engine
from services.goals.mappers import to_goal_type_response

logger = get_logger(__name__)


def title_conflict(title: str) -> ConflictError:
    return ConflictError(
        message=f"Goal type with title '{title.strip()}' already exists",
        details={"title": title}
    )


class GoalTypeStore:
    """
    CRUD for goal types.

    Usage:
        store = GoalTypeStore(create_uow_provider())
        created = await store.create("user-1", GoalTypeRequest(title="Vision"))
    """

    def __init__(self, uow_provider, levels=None):
        self._uow_provider = uow_provider
        self._levels = levels or level_renumbering_engine

    @store_operation("goal_type.create")
    async def create(self, owner_user_id: str, request: GoalTypeRequest) -> GoalTypeResponse:
        validate_goal_type_title(request.title)
        validate_field_definitions(request.custom_fields)
        ensure_unique_keys(request.custom_fields)

        async with self._uow_provider() as uow:
            await self._levels.lock_owner_levels(uow, owner_user_id)

            if await uow.goal_types.title_taken(uow.session, owner_user_id, request.title):
                raise title_conflict(request.title)

            level = await self._levels.next_level(uow, owner_user_id)
            now = utcnow()
            goal_type = GoalType(
                id=uuid.uuid4(),
                owner_user_id=owner_user_id,
                title=request.title.strip(),
                level_number=level,
                created_at=now,
                updated_at=now,
            )
            try:
                await uow.goal_types.save(uow.session, goal_type)
            except IntegrityError as e:
                # (owner, level) taken by a concurrent create: retry from scratch
                raise TransientStoreError(f"level {level} already assigned for owner") from e

            definitions = [build_definition(goal_type.id, d) for d in request.custom_fields]
            if definitions:
                await flush_definitions(uow, definitions, goal_type.id)

            uow.collect(GoalTypeCreated(
                owner_user_id=owner_user_id,
                goal_type_id=str(goal_type.id),
                level_number=level
            ))
            response = to_goal_type_response(goal_type, sorted(definitions, key=lambda d: d.key))

        logger.info(
            "goal_type_created",
            goal_type_id=str(goal_type.id),
            owner_user_id=owner_user_id,
            level_number=level,
            custom_fields=len(definitions)
        )
        return response

    @store_operation("goal_type.update")
    async def update(self, type_id, owner_user_id: str, request: GoalTypeRequest) -> GoalTypeResponse:
        """
        Replace title and field set; level_number is never touched.

        Fields are matched by key: a kept key keeps its definition id (and its
        answers), a dropped key is deleted together with its answers, a new
        key becomes a new definition. Existing answers are not re-checked
        against changed required flags.
        """
        validate_goal_type_title(request.title)
        validate_field_definitions(request.custom_fields)
        ensure_unique_keys(request.custom_fields)

        async with self._uow_provider() as uow:
            goal_type = await uow.goal_types.get_owned_for_update(uow.session, type_id, owner_user_id)
            if goal_type is None:
                raise NotFoundError("GoalType", type_id)

            if await uow.goal_types.title_taken(
                uow.session, owner_user_id, request.title, exclude_id=goal_type.id
            ):
                raise title_conflict(request.title)

            existing = {d.key: d for d in await uow.field_definitions.list_for_type(uow.session, goal_type.id)}
            submitted = {d.key: d for d in request.custom_fields}

            removed_ids = [d.id for key, d in existing.items() if key not in submitted]
            removed_answers = await uow.answers.delete_for_definitions(uow.session, removed_ids)
            await uow.field_definitions.delete_many(uow.session, removed_ids)

            kept = []
            for key, item in submitted.items():
                definition = existing.get(key)
                if definition is None:
                    continue
                definition.label = item.label.strip()
                definition.type = item.type.value
                definition.required = item.required
                definition.placeholder = item.placeholder
                kept.append(definition)

            added = [build_definition(goal_type.id, item) for key, item in submitted.items() if key not in existing]

            goal_type.title = request.title.strip()
            goal_type.updated_at = utcnow()

            try:
                await uow.session.flush()
            except IntegrityError as e:
                raise key_conflict(", ".join(submitted), goal_type.id) from e
            if added:
                await flush_definitions(uow, added, goal_type.id)

            response = to_goal_type_response(goal_type, sorted(kept + added, key=lambda d: d.key))

        logger.info(
            "goal_type_updated",
            goal_type_id=str(type_id),
            fields_added=len(added),
            fields_removed=len(removed_ids),
            removed_answers=removed_answers
        )
        return response

    @store_operation("goal_type.delete")
    async def delete(self, type_id, owner_user_id: str) -> None:
        """
        Delete a type with its definitions, its goals (and their sub-goals)
        and every answer hanging off them, then close the level gap.
        """
        async with self._uow_provider() as uow:
            locked = await self._levels.lock_owner_levels(uow, owner_user_id)
            goal_type = next((t for t in locked if t.id == type_id), None)
            if goal_type is None:
                raise NotFoundError("GoalType", type_id)

            deleted_level = goal_type.level_number

            root_goal_ids = await uow.goals.list_ids_for_type(uow.session, goal_type.id, owner_user_id)
            goal_ids = await uow.goals.collect_subtree_ids(uow.session, root_goal_ids, owner_user_id)
            definitions = await uow.field_definitions.list_for_type(uow.session, goal_type.id)

            await uow.answers.delete_for_goals(uow.session, goal_ids)
            await uow.answers.delete_for_definitions(uow.session, [d.id for d in definitions])
            deleted_goals = await uow.goals.delete_many(uow.session, goal_ids)
            await uow.field_definitions.delete_for_type(uow.session, goal_type.id)
            await uow.goal_types.delete(uow.session, goal_type)

            renumbered = await self._levels.on_delete(uow, owner_user_id, deleted_level)

            uow.collect(GoalTypeDeleted(
                owner_user_id=owner_user_id,
                goal_type_id=str(type_id),
                level_number=deleted_level,
                deleted_goals=deleted_goals
            ))

        logger.info(
            "goal_type_deleted",
            goal_type_id=str(type_id),
            owner_user_id=owner_user_id,
            level_number=deleted_level,
            deleted_goals=deleted_goals,
            renumbered=len(renumbered)
        )

    @store_operation("goal_type.get")
    async def get(self, type_id, owner_user_id: str) -> GoalTypeResponse:
        async with self._uow_provider() as uow:
            goal_type = await uow.goal_types.get_owned(uow.session, type_id, owner_user_id)
            if goal_type is None:
                raise NotFoundError("GoalType", type_id)
            definitions = await uow.field_definitions.list_for_type(uow.session, goal_type.id)
            return to_goal_type_response(goal_type, definitions)

    @store_operation("goal_type.list")
    async def list(self, owner_user_id: str, page_request: PageRequest | None = None) -> PageResponse[GoalTypeResponse]:
        """Default order: levelNumber ascending"""
        page_request = page_request or PageRequest()
        validate_page(page_request)
        order_by = resolve_order_by(GoalType, page_request, "level_number", "asc")

        async with self._uow_provider() as uow:
            total = await uow.goal_types.count(uow.session, owner_user_id)
            goal_types = await uow.goal_types.page(
                uow.session,
                owner_user_id,
                order_by,
                offset=page_request.page * page_request.size,
                limit=page_request.size
            )
            definitions = await uow.field_definitions.list_for_types(uow.session, [t.id for t in goal_types])
            content = [to_goal_type_response(t, definitions[t.id]) for t in goal_types]

        return PageResponse[GoalTypeResponse].of(content, total, page_request.page, page_request.size)
