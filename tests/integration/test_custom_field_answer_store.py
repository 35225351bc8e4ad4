"""
CUSTOM FIELD ANSWER STORE TESTS
"""
import uuid

import pytest
import pytest_asyncio

from conftest import OTHER_OWNER, OWNER, field, goal_type_request
from exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from schemas import CustomFieldAnswerRequest, CustomFieldAnswerUpdateRequest, GoalRequest

pytestmark = pytest.mark.asyncio(loop_scope="function")


@pytest_asyncio.fixture
async def schema(goal_type_store):
    """Goal type with one required and one optional field"""
    goal_type = await goal_type_store.create(OWNER, goal_type_request(
        "Monthly",
        field("effort", label="Effort", required=True),
        field("mood", label="Mood"),
    ))
    fields = {f.key: f for f in goal_type.custom_fields}
    return goal_type, fields


@pytest_asyncio.fixture
async def goal(goal_store, schema):
    goal_type, fields = schema
    return await goal_store.create(OWNER, GoalRequest(
        title="Read 4 books",
        type_id=goal_type.id,
        custom_answers=[CustomFieldAnswerRequest(field_definition_id=fields["effort"].id, value="high")]
    ))


class TestCreateAnswer:

    async def test_create_optional_answer(self, answer_store, schema, goal):
        _, fields = schema

        created = await answer_store.create(goal.id, OWNER, CustomFieldAnswerRequest(
            field_definition_id=fields["mood"].id, value="curious"
        ))

        assert created.goal_id == goal.id
        assert created.field_key == "mood"
        keys = [a.field_key for a in await answer_store.list_for_goal(goal.id, OWNER)]
        assert keys == ["effort", "mood"]

    async def test_scenario_second_answer_for_same_field(self, answer_store, schema, goal):
        """
        SCENARIO: второй ответ на то же поле той же цели

        EXPECTED: ConflictError, первый ответ не изменился
        """
        _, fields = schema
        first = await answer_store.create(goal.id, OWNER, CustomFieldAnswerRequest(
            field_definition_id=fields["mood"].id, value="calm"
        ))

        with pytest.raises(ConflictError) as exc_info:
            await answer_store.create(goal.id, OWNER, CustomFieldAnswerRequest(
                field_definition_id=fields["mood"].id, value="anxious"
            ))

        assert "Use update instead" in exc_info.value.message
        assert (await answer_store.get(first.id, OWNER)).value == "calm"

    async def test_definition_of_other_type(self, goal_type_store, answer_store, goal):
        other = await goal_type_store.create(OWNER, goal_type_request("Other", field("color")))
        with pytest.raises(ValidationError):
            await answer_store.create(goal.id, OWNER, CustomFieldAnswerRequest(
                field_definition_id=other.custom_fields[0].id, value="blue"
            ))

    async def test_unknown_definition(self, answer_store, goal):
        with pytest.raises(NotFoundError):
            await answer_store.create(goal.id, OWNER, CustomFieldAnswerRequest(
                field_definition_id=uuid.uuid4(), value="x"
            ))

    async def test_foreign_goal_not_found(self, answer_store, schema, goal):
        _, fields = schema
        with pytest.raises(NotFoundError):
            await answer_store.create(goal.id, OTHER_OWNER, CustomFieldAnswerRequest(
                field_definition_id=fields["mood"].id, value="x"
            ))


class TestUpdateAnswer:

    async def test_update_value(self, answer_store, goal):
        effort = goal.custom_answers[0]

        updated = await answer_store.update(effort.id, OWNER, CustomFieldAnswerUpdateRequest(value="medium"))

        assert updated.value == "medium"
        assert updated.field_definition_id == effort.field_definition_id

    async def test_required_value_cannot_be_blanked(self, answer_store, goal):
        effort = goal.custom_answers[0]
        with pytest.raises(ValidationError):
            await answer_store.update(effort.id, OWNER, CustomFieldAnswerUpdateRequest(value=""))
        assert (await answer_store.get(effort.id, OWNER)).value == "high"

    async def test_foreign_answer_forbidden(self, answer_store, goal):
        with pytest.raises(ForbiddenError):
            await answer_store.update(goal.custom_answers[0].id, OTHER_OWNER, CustomFieldAnswerUpdateRequest(value="x"))


class TestDeleteAnswer:

    async def test_required_answer_cannot_be_deleted(self, answer_store, goal):
        effort = goal.custom_answers[0]
        with pytest.raises(ValidationError):
            await answer_store.delete(effort.id, OWNER)
        assert (await answer_store.get(effort.id, OWNER)).value == "high"

    async def test_optional_answer_deleted(self, answer_store, schema, goal):
        _, fields = schema
        mood = await answer_store.create(goal.id, OWNER, CustomFieldAnswerRequest(
            field_definition_id=fields["mood"].id, value="calm"
        ))

        await answer_store.delete(mood.id, OWNER)

        with pytest.raises(NotFoundError):
            await answer_store.get(mood.id, OWNER)

    async def test_foreign_answer_delete_forbidden(self, answer_store, goal):
        with pytest.raises(ForbiddenError):
            await answer_store.delete(goal.custom_answers[0].id, OTHER_OWNER)

    async def test_foreign_answer_read_concealed(self, answer_store, goal):
        with pytest.raises(NotFoundError):
            await answer_store.get(goal.custom_answers[0].id, OTHER_OWNER)
        with pytest.raises(NotFoundError):
            await answer_store.list_for_goal(goal.id, OTHER_OWNER)
