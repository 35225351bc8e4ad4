from sqlalchemy import Column, String, DateTime, ForeignKey, Text, Integer, Boolean, UniqueConstraint, Index, Uuid
from datetime import datetime, timezone
import uuid
import enum
from database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS
# =============================================================================

class GoalStatus(str, enum.Enum):
    """Lifecycle status of a goal"""
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    ON_HOLD = "ON_HOLD"


class CustomFieldType(str, enum.Enum):
    """
    Data type of a custom field.

    Values are stored as plain text; the type only drives client rendering.
    """
    TEXT = "TEXT"
    NUMBER = "NUMBER"
    DATE = "DATE"
    BOOLEAN = "BOOLEAN"


# =============================================================================
# GOAL TYPES (hierarchy levels)
# =============================================================================

class GoalType(Base):
    """
    One hierarchy level configured by a user.

    Инвариант: level_number образует плотную последовательность 1..N
    для каждого владельца (см. LevelRenumberingEngine).
    """
    __tablename__ = "goal_types"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_user_id = Column(String(255), nullable=False, index=True)
    title = Column(String(100), nullable=False)
    level_number = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("owner_user_id", "level_number", name="uq_goal_types_owner_level"),
    )

    def __repr__(self):
        return f"<GoalType(id={self.id}, owner={self.owner_user_id}, level={self.level_number}, title={self.title!r})>"


class CustomFieldDefinition(Base):
    """Schema entry of a goal type. goal_type_id never changes after creation."""
    __tablename__ = "custom_field_definitions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    goal_type_id = Column(
        Uuid,
        ForeignKey("goal_types.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    key = Column(String(100), nullable=False)
    label = Column(String(255), nullable=False)
    type = Column(String(20), nullable=False, default=CustomFieldType.TEXT.value)
    required = Column(Boolean, nullable=False, default=False)
    placeholder = Column(String(255), nullable=True)

    __table_args__ = (
        UniqueConstraint("goal_type_id", "key", name="uq_custom_field_definitions_type_key"),
    )

    def __repr__(self):
        return f"<CustomFieldDefinition(id={self.id}, goal_type_id={self.goal_type_id}, key={self.key!r})>"


# =============================================================================
# GOALS
# =============================================================================

class Goal(Base):
    __tablename__ = "goals"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_user_id = Column(String(255), nullable=False, index=True)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    type_id = Column(
        Uuid,
        ForeignKey("goal_types.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    status = Column(String(20), nullable=False, default=GoalStatus.NOT_STARTED.value)

    # Sub-goals are removed together with their parent
    parent_id = Column(
        Uuid,
        ForeignKey("goals.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_goals_owner_created", "owner_user_id", "created_at"),
    )

    def __repr__(self):
        return f"<Goal(id={self.id}, owner={self.owner_user_id}, type_id={self.type_id}, status={self.status})>"


class CustomFieldAnswer(Base):
    """
    Value supplied for one field definition on one goal.

    Stores only the definition id; key/label/type are joined at read time.
    """
    __tablename__ = "custom_field_answers"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    goal_id = Column(
        Uuid,
        ForeignKey("goals.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    field_definition_id = Column(
        Uuid,
        ForeignKey("custom_field_definitions.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    value = Column("field_value", Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("goal_id", "field_definition_id", name="uq_custom_field_answers_goal_field"),
    )

    def __repr__(self):
        return f"<CustomFieldAnswer(goal_id={self.goal_id}, field_definition_id={self.field_definition_id})>"
