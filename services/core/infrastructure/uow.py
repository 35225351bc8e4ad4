"""
Unit of Work Pattern + Repositories - Infrastructure Layer
=========================================================

Every repository method takes the session explicitly and every owner-scoped
lookup takes the acting owner id explicitly.
"""
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy import select, func, delete

from error_handler import handle_errors
from models import GoalType, CustomFieldDefinition, Goal, CustomFieldAnswer


class GoalTypeRepository:
    """Репозиторий для GoalType - owner-scoped CRUD + level queries"""

    async def get_owned(self, session, type_id, owner_user_id) -> GoalType | None:
        stmt = select(GoalType).where(
            GoalType.id == type_id,
            GoalType.owner_user_id == owner_user_id
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_owned_for_update(self, session, type_id, owner_user_id) -> GoalType | None:
        """
        Получить тип с pessimistic lock (SELECT ... FOR UPDATE).
        """
        stmt = (
            select(GoalType)
            .where(GoalType.id == type_id, GoalType.owner_user_id == owner_user_id)
            .with_for_update()
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def lock_owner_types(self, session, owner_user_id) -> list[GoalType]:
        """Lock every goal type of the owner, ascending by level"""
        stmt = (
            select(GoalType)
            .where(GoalType.owner_user_id == owner_user_id)
            .order_by(GoalType.level_number.asc())
            .with_for_update()
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def get_many_owned(self, session, type_ids, owner_user_id) -> dict:
        """type_id -> GoalType, restricted to the owner"""
        if not type_ids:
            return {}
        stmt = select(GoalType).where(
            GoalType.id.in_(list(type_ids)),
            GoalType.owner_user_id == owner_user_id
        )
        result = await session.execute(stmt)
        return {goal_type.id: goal_type for goal_type in result.scalars().all()}

    async def max_level(self, session, owner_user_id) -> int:
        stmt = select(func.coalesce(func.max(GoalType.level_number), 0)).where(
            GoalType.owner_user_id == owner_user_id
        )
        result = await session.execute(stmt)
        return int(result.scalar_one())

    async def list_following(self, session, owner_user_id, level_number) -> list[GoalType]:
        """Types with a higher level, ascending, locked"""
        stmt = (
            select(GoalType)
            .where(
                GoalType.owner_user_id == owner_user_id,
                GoalType.level_number > level_number
            )
            .order_by(GoalType.level_number.asc())
            .with_for_update()
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def title_taken(self, session, owner_user_id, title, exclude_id=None) -> bool:
        """Case-insensitive title check within one owner"""
        stmt = select(func.count(GoalType.id)).where(
            GoalType.owner_user_id == owner_user_id,
            func.lower(GoalType.title) == title.strip().lower()
        )
        if exclude_id is not None:
            stmt = stmt.where(GoalType.id != exclude_id)
        result = await session.execute(stmt)
        return result.scalar_one() > 0

    async def page(self, session, owner_user_id, order_by, offset, limit) -> list[GoalType]:
        stmt = (
            select(GoalType)
            .where(GoalType.owner_user_id == owner_user_id)
            .order_by(*order_by)
            .offset(offset)
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def count(self, session, owner_user_id) -> int:
        stmt = select(func.count(GoalType.id)).where(GoalType.owner_user_id == owner_user_id)
        result = await session.execute(stmt)
        return result.scalar_one()

    async def save(self, session, goal_type) -> None:
        """Сохранить (add + flush для проверки уникальности уровня)"""
        session.add(goal_type)
        await session.flush()

    async def delete(self, session, goal_type) -> None:
        await session.delete(goal_type)
        await session.flush()


class CustomFieldDefinitionRepository:
    """Репозиторий для CustomFieldDefinition"""

    async def get_with_owner(self, session, definition_id) -> tuple[CustomFieldDefinition, GoalType] | None:
        """Definition together with its parent type (carries owner_user_id)"""
        stmt = (
            select(CustomFieldDefinition, GoalType)
            .join(GoalType, GoalType.id == CustomFieldDefinition.goal_type_id)
            .where(CustomFieldDefinition.id == definition_id)
        )
        result = await session.execute(stmt)
        row = result.first()
        return (row[0], row[1]) if row else None

    async def get_many_with_owner(self, session, definition_ids) -> dict:
        """definition_id -> (definition, owner_user_id of its parent type)"""
        if not definition_ids:
            return {}
        stmt = (
            select(CustomFieldDefinition, GoalType.owner_user_id)
            .join(GoalType, GoalType.id == CustomFieldDefinition.goal_type_id)
            .where(CustomFieldDefinition.id.in_(list(definition_ids)))
        )
        result = await session.execute(stmt)
        return {definition.id: (definition, owner_user_id) for definition, owner_user_id in result.all()}

    async def list_for_type(self, session, goal_type_id) -> list[CustomFieldDefinition]:
        stmt = (
            select(CustomFieldDefinition)
            .where(CustomFieldDefinition.goal_type_id == goal_type_id)
            .order_by(CustomFieldDefinition.key.asc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def list_for_types(self, session, goal_type_ids) -> dict:
        """goal_type_id -> [definitions]"""
        grouped = {type_id: [] for type_id in goal_type_ids}
        if not grouped:
            return grouped
        stmt = (
            select(CustomFieldDefinition)
            .where(CustomFieldDefinition.goal_type_id.in_(list(grouped)))
            .order_by(CustomFieldDefinition.key.asc())
        )
        result = await session.execute(stmt)
        for definition in result.scalars().all():
            grouped[definition.goal_type_id].append(definition)
        return grouped

    async def key_taken(self, session, goal_type_id, key, exclude_id=None) -> bool:
        stmt = select(func.count(CustomFieldDefinition.id)).where(
            CustomFieldDefinition.goal_type_id == goal_type_id,
            CustomFieldDefinition.key == key
        )
        if exclude_id is not None:
            stmt = stmt.where(CustomFieldDefinition.id != exclude_id)
        result = await session.execute(stmt)
        return result.scalar_one() > 0

    async def delete_many(self, session, definition_ids) -> int:
        if not definition_ids:
            return 0
        result = await session.execute(
            delete(CustomFieldDefinition).where(CustomFieldDefinition.id.in_(list(definition_ids)))
        )
        return result.rowcount

    async def delete_for_type(self, session, goal_type_id) -> int:
        result = await session.execute(
            delete(CustomFieldDefinition).where(CustomFieldDefinition.goal_type_id == goal_type_id)
        )
        return result.rowcount


class GoalRepository:
    """Репозиторий для Goal - owner-scoped CRUD"""

    async def get_owned(self, session, goal_id, owner_user_id) -> Goal | None:
        stmt = select(Goal).where(Goal.id == goal_id, Goal.owner_user_id == owner_user_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_owned_for_update(self, session, goal_id, owner_user_id) -> Goal | None:
        stmt = (
            select(Goal)
            .where(Goal.id == goal_id, Goal.owner_user_id == owner_user_id)
            .with_for_update()
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def page(self, session, owner_user_id, order_by, offset, limit, status=None, type_id=None) -> list[Goal]:
        stmt = select(Goal).where(Goal.owner_user_id == owner_user_id)
        if status is not None:
            stmt = stmt.where(Goal.status == status)
        if type_id is not None:
            stmt = stmt.where(Goal.type_id == type_id)
        stmt = stmt.order_by(*order_by).offset(offset).limit(limit)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def count(self, session, owner_user_id, status=None, type_id=None) -> int:
        stmt = select(func.count(Goal.id)).where(Goal.owner_user_id == owner_user_id)
        if status is not None:
            stmt = stmt.where(Goal.status == status)
        if type_id is not None:
            stmt = stmt.where(Goal.type_id == type_id)
        result = await session.execute(stmt)
        return result.scalar_one()

    async def list_ids_for_type(self, session, type_id, owner_user_id) -> list:
        stmt = select(Goal.id).where(Goal.type_id == type_id, Goal.owner_user_id == owner_user_id)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def parent_id_of(self, session, goal_id, owner_user_id):
        stmt = select(Goal.parent_id).where(Goal.id == goal_id, Goal.owner_user_id == owner_user_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def collect_subtree_ids(self, session, root_ids, owner_user_id) -> list:
        """Root goals plus every descendant, breadth-first"""
        collected = list(dict.fromkeys(root_ids))
        seen = set(collected)
        frontier = list(collected)
        while frontier:
            stmt = select(Goal.id).where(
                Goal.parent_id.in_(frontier),
                Goal.owner_user_id == owner_user_id
            )
            result = await session.execute(stmt)
            frontier = [goal_id for goal_id in result.scalars().all() if goal_id not in seen]
            seen.update(frontier)
            collected.extend(frontier)
        return collected

    async def save(self, session, goal) -> None:
        """Сохранить (add + flush для получения ID)"""
        session.add(goal)
        await session.flush()

    async def delete_many(self, session, goal_ids) -> int:
        if not goal_ids:
            return 0
        result = await session.execute(delete(Goal).where(Goal.id.in_(list(goal_ids))))
        return result.rowcount


class CustomFieldAnswerRepository:
    """Репозиторий для CustomFieldAnswer"""

    async def get_with_context(self, session, answer_id) -> tuple[CustomFieldAnswer, CustomFieldDefinition, Goal] | None:
        """Owner-agnostic lookup of an answer with its definition and goal"""
        stmt = (
            select(CustomFieldAnswer, CustomFieldDefinition, Goal)
            .join(CustomFieldDefinition, CustomFieldDefinition.id == CustomFieldAnswer.field_definition_id)
            .join(Goal, Goal.id == CustomFieldAnswer.goal_id)
            .where(CustomFieldAnswer.id == answer_id)
        )
        result = await session.execute(stmt)
        row = result.first()
        return (row[0], row[1], row[2]) if row else None

    async def list_for_goals(self, session, goal_ids) -> dict:
        """goal_id -> [(answer, definition)] ordered by field key"""
        grouped = {goal_id: [] for goal_id in goal_ids}
        if not grouped:
            return grouped
        stmt = (
            select(CustomFieldAnswer, CustomFieldDefinition)
            .join(CustomFieldDefinition, CustomFieldDefinition.id == CustomFieldAnswer.field_definition_id)
            .where(CustomFieldAnswer.goal_id.in_(list(grouped)))
            .order_by(CustomFieldDefinition.key.asc())
        )
        result = await session.execute(stmt)
        for answer, definition in result.all():
            grouped[answer.goal_id].append((answer, definition))
        return grouped

    async def exists(self, session, goal_id, field_definition_id) -> bool:
        stmt = select(func.count(CustomFieldAnswer.id)).where(
            CustomFieldAnswer.goal_id == goal_id,
            CustomFieldAnswer.field_definition_id == field_definition_id
        )
        result = await session.execute(stmt)
        return result.scalar_one() > 0

    async def save(self, session, answer) -> None:
        session.add(answer)
        await session.flush()

    async def save_all(self, session, answers) -> None:
        session.add_all(answers)
        await session.flush()

    async def delete(self, session, answer) -> None:
        await session.delete(answer)
        await session.flush()

    async def delete_for_goals(self, session, goal_ids) -> int:
        if not goal_ids:
            return 0
        result = await session.execute(
            delete(CustomFieldAnswer).where(CustomFieldAnswer.goal_id.in_(list(goal_ids)))
        )
        return result.rowcount

    async def delete_for_definitions(self, session, definition_ids) -> int:
        if not definition_ids:
            return 0
        result = await session.execute(
            delete(CustomFieldAnswer).where(CustomFieldAnswer.field_definition_id.in_(list(definition_ids)))
        )
        return result.rowcount


class UnitOfWork:
    """
    Тонкий Unit of Work для управления транзакциями.

    Commit on clean exit, rollback on any exception (including cancellation
    and timeouts). Domain events collected during the transaction are
    published only after a successful commit.

    Usage:
        async with UnitOfWork(session_factory) as uow:
            goal_type = await uow.goal_types.get_owned(uow.session, type_id, owner_user_id)
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], publisher=None):
        self._session_factory = session_factory
        self._session: AsyncSession | None = None
        self._publisher = publisher
        self._events: list = []

        self.goal_types = GoalTypeRepository()
        self.field_definitions = CustomFieldDefinitionRepository()
        self.goals = GoalRepository()
        self.answers = CustomFieldAnswerRepository()

    async def __aenter__(self) -> "UnitOfWork":
        """Создаём сессию и начинаем транзакцию"""
        self._session = self._session_factory()
        self._events = []
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Коммит или rollback + закрытие сессии"""
        committed = False
        try:
            if exc_type is None:
                if self._session:
                    await self._session.commit()
                    committed = True
            else:
                if self._session:
                    await self._session.rollback()
        finally:
            if self._session:
                await self._session.close()
                self._session = None

        if committed and self._publisher is not None and self._events:
            await self._publish_committed(self._events)
        self._events = []

    @handle_errors(default=None, context={"sink": "domain_events"})
    async def _publish_committed(self, events) -> None:
        """The transaction is already committed; a publishing failure is only logged"""
        await self._publisher.publish_all(events)

    @property
    def session(self) -> AsyncSession:
        """Доступ к текущей сессии"""
        if self._session is None:
            raise RuntimeError(
                "Session not available. Use 'async with UnitOfWork() as uow:' pattern."
            )
        return self._session

    def collect(self, event) -> None:
        """Queue a domain event for publication after commit"""
        self._events.append(event)


def create_uow_provider(session_factory=None, publisher=None):
    """
    Фабрика для создания UoW провайдера.

    Usage:
        uow_provider = create_uow_provider()
        async with uow_provider() as uow:
            ...
    """
    if session_factory is None:
        from database import AsyncSessionLocal
        session_factory = AsyncSessionLocal

    def provider() -> UnitOfWork:
        return UnitOfWork(session_factory, publisher=publisher)

    return provider
