"""
LEVEL DENSITY TESTS
===================

After any sequence of create/delete the owner's levels are exactly 1..N,
and the relative order of surviving types never changes.
"""
import asyncio
import random

import pytest
from sqlalchemy.exc import IntegrityError

from conftest import OTHER_OWNER, OWNER, goal_type_request
from exceptions import InternalError
from models import GoalType
from schemas import PageRequest
from services.goals import GoalTypeStore

pytestmark = pytest.mark.asyncio(loop_scope="function")


async def current_order(store, owner):
    page = await store.list(owner, PageRequest(size=100))
    return [t.id for t in page.content], [t.level_number for t in page.content]


class TestLevelDensity:

    async def test_random_create_delete_sequence(self, goal_type_store):
        """
        SCENARIO: 60 случайных операций create/delete для двух владельцев

        EXPECTED: после каждой операции уровни плотные, порядок сохраняется
        """
        rng = random.Random(20240601)
        expected = {OWNER: [], OTHER_OWNER: []}
        counter = 0

        for _ in range(60):
            owner = rng.choice([OWNER, OTHER_OWNER])
            if expected[owner] and rng.random() < 0.4:
                victim = rng.choice(expected[owner])
                await goal_type_store.delete(victim, owner)
                expected[owner].remove(victim)
            else:
                counter += 1
                created = await goal_type_store.create(owner, goal_type_request(f"Type {counter}"))
                assert created.level_number == len(expected[owner]) + 1
                expected[owner].append(created.id)

            ids, levels = await current_order(goal_type_store, owner)
            assert levels == list(range(1, len(expected[owner]) + 1))
            assert ids == expected[owner]

    async def test_level_is_never_taken_from_client(self, goal_type_store):
        await goal_type_store.create(OWNER, goal_type_request("A"))
        created = await goal_type_store.create(OWNER, goal_type_request("B"))
        assert created.level_number == 2


class TestLevelRace:

    async def test_lost_level_race_is_retried(self, uow_provider, monkeypatch):
        """
        SCENARIO: параллельный create занял уровень между чтением max и вставкой

        EXPECTED: транзакция повторяется и получает следующий уровень
        """
        import config
        monkeypatch.setattr(config, "STORE_RETRY_BACKOFF_SECONDS", 0)

        store = GoalTypeStore(uow_provider)
        await store.create(OWNER, goal_type_request("A"))

        from services.goals.level_renumbering import LevelRenumberingEngine

        class StaleLevels(LevelRenumberingEngine):
            """Returns a stale max on the first call only"""
            calls = 0

            async def next_level(self, uow, owner_user_id):
                StaleLevels.calls += 1
                if StaleLevels.calls == 1:
                    return 1
                return await super().next_level(uow, owner_user_id)

        racing_store = GoalTypeStore(uow_provider, levels=StaleLevels())
        created = await racing_store.create(OWNER, goal_type_request("B"))

        assert created.level_number == 2
        assert StaleLevels.calls == 2
        _, levels = await current_order(store, OWNER)
        assert levels == [1, 2]

    async def test_level_race_exhausting_retries(self, uow_provider, monkeypatch):
        import config
        monkeypatch.setattr(config, "STORE_RETRY_BACKOFF_SECONDS", 0)
        monkeypatch.setattr(config, "STORE_RETRY_ATTEMPTS", 2)

        store = GoalTypeStore(uow_provider)
        await store.create(OWNER, goal_type_request("A"))

        from services.goals.level_renumbering import LevelRenumberingEngine

        class AlwaysStale(LevelRenumberingEngine):
            async def next_level(self, uow, owner_user_id):
                return 1

        with pytest.raises(InternalError) as exc_info:
            await GoalTypeStore(uow_provider, levels=AlwaysStale()).create(OWNER, goal_type_request("B"))

        assert isinstance(exc_info.value.__cause__.__cause__, IntegrityError)
        _, levels = await current_order(store, OWNER)
        assert levels == [1]

    async def test_unique_constraint_guards_levels(self, session_factory):
        """The database itself rejects a duplicate (owner, level)"""
        import uuid
        async with session_factory() as session:
            session.add(GoalType(id=uuid.uuid4(), owner_user_id=OWNER, title="A", level_number=1))
            await session.commit()

            session.add(GoalType(id=uuid.uuid4(), owner_user_id=OWNER, title="B", level_number=1))
            with pytest.raises(IntegrityError):
                await session.commit()


class TestOverlappingTransactions:

    async def test_overlapping_deletes_keep_levels_dense(self, goal_type_store):
        """
        SCENARIO: три удаления одного владельца выполняются одновременно

        EXPECTED: каждое видит актуальные уровни, итог 1..3 без дыр
        """
        created = [await goal_type_store.create(OWNER, goal_type_request(f"T{i}")) for i in range(6)]

        await asyncio.gather(
            goal_type_store.delete(created[1].id, OWNER),
            goal_type_store.delete(created[3].id, OWNER),
            goal_type_store.delete(created[0].id, OWNER),
        )

        ids, levels = await current_order(goal_type_store, OWNER)
        assert levels == [1, 2, 3]
        assert ids == [created[2].id, created[4].id, created[5].id]

    async def test_overlapping_creates_get_distinct_levels(self, goal_type_store):
        results = await asyncio.gather(*(
            goal_type_store.create(OWNER, goal_type_request(f"Parallel {i}")) for i in range(5)
        ))

        assert sorted(r.level_number for r in results) == [1, 2, 3, 4, 5]
        _, levels = await current_order(goal_type_store, OWNER)
        assert levels == [1, 2, 3, 4, 5]
