"""
Domain events - user-scoped facts published after commit.

Consumers (notifications, membership) only ever see these, never the store.
"""
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class DomainEvent:
    owner_user_id: str

    @property
    def name(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        payload = asdict(self)
        payload["event_type"] = self.name
        return payload


@dataclass
class GoalTypeCreated(DomainEvent):
    goal_type_id: str
    level_number: int
    timestamp: str = field(default_factory=_now)


@dataclass
class GoalTypeDeleted(DomainEvent):
    goal_type_id: str
    level_number: int
    deleted_goals: int
    timestamp: str = field(default_factory=_now)


@dataclass
class GoalTypeLevelsRenumbered(DomainEvent):
    """levels: goal_type_id -> new level_number"""
    levels: dict
    timestamp: str = field(default_factory=_now)


@dataclass
class GoalSaved(DomainEvent):
    goal_id: str
    goal_type_id: str
    created: bool
    timestamp: str = field(default_factory=_now)


@dataclass
class GoalDeleted(DomainEvent):
    goal_id: str
    deleted_goals: int
    timestamp: str = field(default_factory=_now)
