"""
FastAPI dependencies: acting user and store wiring.

The acting user id comes from the trusted gateway header; every store call
receives it explicitly.
"""
from fastapi import Depends, Header, Query
from typing import Optional

from config import DEFAULT_PAGE_SIZE, USER_ID_HEADER
from exceptions import UnauthenticatedError
from infrastructure.events import event_publisher
from infrastructure.uow import create_uow_provider
from schemas import PageRequest
from services.goals import (
    CustomFieldAnswerStore,
    CustomFieldDefinitionStore,
    GoalStore,
    GoalTypeStore,
)

# UoW Provider for dependency injection (tests override get_uow_provider)
uow_provider = create_uow_provider(publisher=event_publisher)


def get_uow_provider():
    return uow_provider


async def get_current_user_id(
    user_id: str | None = Header(default=None, alias=USER_ID_HEADER)
) -> str:
    if user_id is None or not user_id.strip():
        raise UnauthenticatedError()
    return user_id.strip()


def get_goal_type_store(provider=Depends(get_uow_provider)) -> GoalTypeStore:
    return GoalTypeStore(provider)


def get_custom_field_definition_store(provider=Depends(get_uow_provider)) -> CustomFieldDefinitionStore:
    return CustomFieldDefinitionStore(provider)


def get_goal_store(provider=Depends(get_uow_provider)) -> GoalStore:
    return GoalStore(provider)


def get_custom_field_answer_store(provider=Depends(get_uow_provider)) -> CustomFieldAnswerStore:
    return CustomFieldAnswerStore(provider)


def get_page_request(
    page: int = Query(0, description="Page number (0-based)"),
    size: int = Query(DEFAULT_PAGE_SIZE, description="Items per page"),
    sort_by: Optional[str] = Query(None, alias="sortBy", description="Entity attribute to sort by"),
    direction: Optional[str] = Query(None, description="asc | desc")
) -> PageRequest:
    """Bounds are checked by the store so errors share one format"""
    return PageRequest(page=page, size=size, sort_by=sort_by, direction=direction)
