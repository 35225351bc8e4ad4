# Infrastructure Layer
from .uow import (
    UnitOfWork,
    GoalTypeRepository,
    CustomFieldDefinitionRepository,
    GoalRepository,
    CustomFieldAnswerRepository,
    create_uow_provider
)
from .events import EventPublisher, event_publisher
