"""
Level Renumbering Engine

Keeps every owner's goal-type levels dense (1..N, no gaps, no duplicates).
Runs inside the caller's transaction; owns no session.
"""
from domain.events import GoalTypeLevelsRenumbered
from logging_config import get_logger

logger = get_logger(__name__)


class LevelRenumberingEngine:
    """
    Append-only level assignment plus deletion-triggered compaction.

    There is no "insert at level K": new types always land at max + 1, and
    levels only move down when a lower level is deleted.
    """

    async def lock_owner_levels(self, uow, owner_user_id: str) -> list:
        """
        Serialize level changes for one owner (SELECT ... FOR UPDATE over the
        owner's types). Two overlapping deletes can no longer compute stale
        "levels above X" snapshots.
        """
        return await uow.goal_types.lock_owner_types(uow.session, owner_user_id)

    async def next_level(self, uow, owner_user_id: str) -> int:
        """max(level_number) + 1, or 1 when the owner has no types"""
        return await uow.goal_types.max_level(uow.session, owner_user_id) + 1

    async def on_delete(self, uow, owner_user_id: str, deleted_level: int) -> dict:
        """
        Shift every type above deleted_level down by exactly one.

        Applied in ascending order, one flush per row: each target level was
        just vacated by the delete or by the previous write, so an eager
        (owner, level) unique constraint never sees a duplicate.

        Returns:
            {goal_type_id: new_level} for the shifted types (empty when the
            deleted type was the highest one)
        """
        following = await uow.goal_types.list_following(uow.session, owner_user_id, deleted_level)
        if not following:
            logger.debug("levels_unchanged", owner_user_id=owner_user_id, deleted_level=deleted_level)
            return {}

        renumbered = {}
        for goal_type in following:
            goal_type.level_number = goal_type.level_number - 1
            await uow.session.flush()
            renumbered[str(goal_type.id)] = goal_type.level_number

        uow.collect(GoalTypeLevelsRenumbered(owner_user_id=owner_user_id, levels=renumbered))
        logger.info(
            "levels_recalculated",
            owner_user_id=owner_user_id,
            deleted_level=deleted_level,
            shifted=len(renumbered)
        )
        return renumbered


level_renumbering_engine = LevelRenumberingEngine()
