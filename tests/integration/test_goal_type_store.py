"""
GOAL TYPE STORE TESTS
=====================

Level assignment, renumbering on delete, embedded field schema and
owner isolation against a real (SQLite) database.
"""
import uuid

import pytest
from sqlalchemy import func, select

from conftest import OTHER_OWNER, OWNER, field, goal_type_request
from domain.events import GoalTypeCreated, GoalTypeDeleted, GoalTypeLevelsRenumbered
from exceptions import ConflictError, NotFoundError, ValidationError
from models import CustomFieldAnswer, CustomFieldDefinition, Goal
from schemas import CustomFieldAnswerRequest, GoalRequest, PageRequest

pytestmark = pytest.mark.asyncio(loop_scope="function")


async def levels_of(store, owner):
    page = await store.list(owner, PageRequest(size=100))
    return [(t.title, t.level_number) for t in page.content]


class TestCreate:

    async def test_levels_assigned_in_creation_order(self, goal_type_store):
        for title in ("Vision", "Quarter", "Week"):
            await goal_type_store.create(OWNER, goal_type_request(title))

        assert await levels_of(goal_type_store, OWNER) == [("Vision", 1), ("Quarter", 2), ("Week", 3)]

    async def test_levels_are_per_owner(self, goal_type_store):
        await goal_type_store.create(OWNER, goal_type_request("Vision"))
        other = await goal_type_store.create(OTHER_OWNER, goal_type_request("Vision"))

        assert other.level_number == 1

    async def test_custom_fields_created_with_type(self, goal_type_store):
        created = await goal_type_store.create(OWNER, goal_type_request(
            "Vision",
            field("target_year", type="NUMBER", required=True),
            field("notes"),
        ))

        assert [f.key for f in created.custom_fields] == ["notes", "target_year"]
        assert all(f.goal_type_id == created.id for f in created.custom_fields)

    async def test_duplicate_keys_rejected_without_partial_write(self, goal_type_store):
        """
        SCENARIO: два поля с одинаковым ключом в одном запросе

        EXPECTED: ConflictError, тип не создан
        """
        with pytest.raises(ConflictError):
            await goal_type_store.create(OWNER, goal_type_request("Vision", field("budget"), field("budget")))

        assert await levels_of(goal_type_store, OWNER) == []

    async def test_invalid_key_rejected(self, goal_type_store):
        with pytest.raises(ValidationError) as exc_info:
            await goal_type_store.create(OWNER, goal_type_request("Vision", field("Budget")))
        assert exc_info.value.violations[0].field == "customFields[0].key"

    async def test_title_unique_per_owner_case_insensitive(self, goal_type_store):
        await goal_type_store.create(OWNER, goal_type_request("Vision"))
        with pytest.raises(ConflictError):
            await goal_type_store.create(OWNER, goal_type_request("vision "))

    async def test_created_event_published_after_commit(self, goal_type_store, published_events):
        created = await goal_type_store.create(OWNER, goal_type_request("Vision"))

        assert len(published_events) == 1
        event = published_events[0]
        assert isinstance(event, GoalTypeCreated)
        assert event.goal_type_id == str(created.id)
        assert event.owner_user_id == OWNER

    async def test_failed_create_publishes_nothing(self, goal_type_store, published_events):
        with pytest.raises(ValidationError):
            await goal_type_store.create(OWNER, goal_type_request(" "))
        assert published_events == []


class TestDelete:

    async def test_scenario_delete_middle_level(self, goal_type_store):
        """Levels above the deleted one move down by exactly one"""
        a = await goal_type_store.create(OWNER, goal_type_request("A"))
        b = await goal_type_store.create(OWNER, goal_type_request("B"))
        c = await goal_type_store.create(OWNER, goal_type_request("C"))
        d = await goal_type_store.create(OWNER, goal_type_request("D"))

        await goal_type_store.delete(b.id, OWNER)

        assert await levels_of(goal_type_store, OWNER) == [("A", 1), ("C", 2), ("D", 3)]
        assert (await goal_type_store.get(a.id, OWNER)).level_number == 1
        assert (await goal_type_store.get(c.id, OWNER)).level_number == 2
        assert (await goal_type_store.get(d.id, OWNER)).level_number == 3

    async def test_delete_highest_level_leaves_others(self, goal_type_store, published_events):
        await goal_type_store.create(OWNER, goal_type_request("A"))
        top = await goal_type_store.create(OWNER, goal_type_request("B"))
        published_events.clear()

        await goal_type_store.delete(top.id, OWNER)

        assert await levels_of(goal_type_store, OWNER) == [("A", 1)]
        assert not any(isinstance(e, GoalTypeLevelsRenumbered) for e in published_events)
        assert any(isinstance(e, GoalTypeDeleted) for e in published_events)

    async def test_create_after_delete_appends_at_end(self, goal_type_store):
        a = await goal_type_store.create(OWNER, goal_type_request("A"))
        await goal_type_store.create(OWNER, goal_type_request("B"))
        await goal_type_store.delete(a.id, OWNER)

        created = await goal_type_store.create(OWNER, goal_type_request("C"))

        assert created.level_number == 2
        assert await levels_of(goal_type_store, OWNER) == [("B", 1), ("C", 2)]

    async def test_delete_does_not_touch_other_owner(self, goal_type_store):
        mine = await goal_type_store.create(OWNER, goal_type_request("A"))
        await goal_type_store.create(OWNER, goal_type_request("B"))
        await goal_type_store.create(OTHER_OWNER, goal_type_request("X"))
        await goal_type_store.create(OTHER_OWNER, goal_type_request("Y"))

        await goal_type_store.delete(mine.id, OWNER)

        assert await levels_of(goal_type_store, OTHER_OWNER) == [("X", 1), ("Y", 2)]

    async def test_foreign_type_is_not_found(self, goal_type_store):
        foreign = await goal_type_store.create(OTHER_OWNER, goal_type_request("X"))

        with pytest.raises(NotFoundError):
            await goal_type_store.delete(foreign.id, OWNER)
        with pytest.raises(NotFoundError):
            await goal_type_store.get(foreign.id, OWNER)

    async def test_unknown_type_is_not_found(self, goal_type_store):
        with pytest.raises(NotFoundError):
            await goal_type_store.delete(uuid.uuid4(), OWNER)

    async def test_cascade_removes_goals_definitions_and_answers(self, goal_type_store, goal_store, session_factory):
        """
        SCENARIO: удаляем тип, у которого есть цели с ответами и подцели

        EXPECTED: ничего не остаётся, уровни плотные
        """
        vision = await goal_type_store.create(OWNER, goal_type_request("Vision", field("horizon", required=True)))
        quarter = await goal_type_store.create(OWNER, goal_type_request("Quarter"))
        horizon_id = vision.custom_fields[0].id

        parent = await goal_store.create(OWNER, GoalRequest(
            title="Become fluent",
            type_id=vision.id,
            custom_answers=[CustomFieldAnswerRequest(field_definition_id=horizon_id, value="5y")]
        ))
        await goal_store.create(OWNER, GoalRequest(title="Q1 lessons", type_id=quarter.id, parent_goal_id=parent.id))

        await goal_type_store.delete(vision.id, OWNER)

        async with session_factory() as session:
            assert await session.scalar(select(func.count(Goal.id))) == 0
            assert await session.scalar(select(func.count(CustomFieldAnswer.id))) == 0
            assert await session.scalar(
                select(func.count(CustomFieldDefinition.id)).where(CustomFieldDefinition.goal_type_id == vision.id)
            ) == 0
        assert await levels_of(goal_type_store, OWNER) == [("Quarter", 1)]


class TestUpdate:

    async def test_update_keeps_level_and_matches_fields_by_key(self, goal_type_store):
        created = await goal_type_store.create(OWNER, goal_type_request(
            "Vision", field("budget"), field("notes")
        ))
        budget_id = next(f.id for f in created.custom_fields if f.key == "budget")

        updated = await goal_type_store.update(created.id, OWNER, goal_type_request(
            "Life vision", field("budget", label="Total budget", required=True), field("deadline", type="DATE")
        ))

        assert updated.level_number == created.level_number
        assert updated.title == "Life vision"
        by_key = {f.key: f for f in updated.custom_fields}
        assert set(by_key) == {"budget", "deadline"}
        assert by_key["budget"].id == budget_id
        assert by_key["budget"].label == "Total budget"
        assert by_key["budget"].required is True

    async def test_update_foreign_type_not_found(self, goal_type_store):
        foreign = await goal_type_store.create(OTHER_OWNER, goal_type_request("X"))
        with pytest.raises(NotFoundError):
            await goal_type_store.update(foreign.id, OWNER, goal_type_request("Mine now"))


class TestList:

    async def test_pagination_envelope(self, goal_type_store):
        for i in range(5):
            await goal_type_store.create(OWNER, goal_type_request(f"Level {i}"))

        page = await goal_type_store.list(OWNER, PageRequest(page=1, size=2))

        assert [t.level_number for t in page.content] == [3, 4]
        assert page.total_elements == 5
        assert page.total_pages == 3
        assert page.first is False
        assert page.last is False

    async def test_sort_by_title_descending(self, goal_type_store):
        for title in ("Beta", "Alpha", "Gamma"):
            await goal_type_store.create(OWNER, goal_type_request(title))

        page = await goal_type_store.list(OWNER, PageRequest(sort_by="title", direction="desc"))

        assert [t.title for t in page.content] == ["Gamma", "Beta", "Alpha"]

    async def test_unknown_sort_attribute(self, goal_type_store):
        with pytest.raises(ValidationError):
            await goal_type_store.list(OWNER, PageRequest(sort_by="owner_password"))
