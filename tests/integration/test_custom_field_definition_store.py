"""
CUSTOM FIELD DEFINITION STORE TESTS
"""
import uuid

import pytest
import pytest_asyncio

from conftest import OTHER_OWNER, OWNER, field, goal_type_request
from exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from schemas import CustomFieldAnswerRequest, GoalRequest

pytestmark = pytest.mark.asyncio(loop_scope="function")


@pytest_asyncio.fixture
async def vision(goal_type_store):
    return await goal_type_store.create(OWNER, goal_type_request("Vision", field("budget")))


class TestCreateDefinition:

    async def test_added_to_owned_type(self, definition_store, vision):
        created = await definition_store.create(vision.id, OWNER, field("deadline", type="DATE", placeholder="YYYY-MM-DD"))

        assert created.goal_type_id == vision.id
        assert created.placeholder == "YYYY-MM-DD"
        keys = [d.key for d in await definition_store.list_for_type(vision.id, OWNER)]
        assert keys == ["budget", "deadline"]

    async def test_duplicate_key_in_same_type(self, definition_store, vision):
        """Scenario: ключ уже существует в этом типе"""
        with pytest.raises(ConflictError) as exc_info:
            await definition_store.create(vision.id, OWNER, field("budget", label="Other label"))
        assert exc_info.value.message == "Custom field key already exists: budget"

    async def test_same_key_allowed_in_another_type(self, goal_type_store, definition_store, vision):
        other = await goal_type_store.create(OWNER, goal_type_request("Quarter"))
        created = await definition_store.create(other.id, OWNER, field("budget"))
        assert created.goal_type_id == other.id

    async def test_invalid_key(self, definition_store, vision):
        with pytest.raises(ValidationError) as exc_info:
            await definition_store.create(vision.id, OWNER, field("Total Budget", label="Total"))
        assert exc_info.value.violations[0].field == "key"

    async def test_foreign_type_not_found(self, definition_store, vision):
        with pytest.raises(NotFoundError):
            await definition_store.create(vision.id, OTHER_OWNER, field("hack"))


class TestUpdateDefinition:

    async def test_update_changes_everything_but_type(self, definition_store, vision):
        budget = vision.custom_fields[0]

        updated = await definition_store.update(
            budget.id, OWNER, field("total_budget", label="Total budget", type="NUMBER", required=True)
        )

        assert updated.id == budget.id
        assert updated.goal_type_id == vision.id
        assert updated.key == "total_budget"
        assert updated.type == "NUMBER"
        assert updated.required is True

    async def test_rename_to_existing_key_conflicts(self, definition_store, vision):
        deadline = await definition_store.create(vision.id, OWNER, field("deadline"))
        with pytest.raises(ConflictError):
            await definition_store.update(deadline.id, OWNER, field("budget"))

    async def test_foreign_definition_forbidden(self, definition_store, vision):
        with pytest.raises(ForbiddenError):
            await definition_store.update(vision.custom_fields[0].id, OTHER_OWNER, field("budget"))

    async def test_unknown_definition(self, definition_store):
        with pytest.raises(NotFoundError):
            await definition_store.update(uuid.uuid4(), OWNER, field("budget"))


class TestReadAndDelete:

    async def test_foreign_definition_read_is_concealed(self, definition_store, vision):
        with pytest.raises(NotFoundError):
            await definition_store.get(vision.custom_fields[0].id, OTHER_OWNER)

    async def test_delete_foreign_definition_forbidden(self, definition_store, vision):
        with pytest.raises(ForbiddenError):
            await definition_store.delete(vision.custom_fields[0].id, OTHER_OWNER)

    async def test_delete_removes_answers(self, definition_store, goal_store, answer_store, vision):
        budget = vision.custom_fields[0]
        goal = await goal_store.create(OWNER, GoalRequest(
            title="Save money",
            type_id=vision.id,
            custom_answers=[CustomFieldAnswerRequest(field_definition_id=budget.id, value="1000")]
        ))

        await definition_store.delete(budget.id, OWNER)

        assert await answer_store.list_for_goal(goal.id, OWNER) == []
        with pytest.raises(NotFoundError):
            await definition_store.get(budget.id, OWNER)
