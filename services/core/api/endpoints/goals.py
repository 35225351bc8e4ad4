"""
Goals API Endpoints Module
"""
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from api.dependencies import get_current_user_id, get_goal_store, get_page_request
from api.errors import ERROR_RESPONSES
from models import GoalStatus
from schemas import GoalRequest, GoalResponse, PageRequest, PageResponse
from services.goals import GoalStore

router = APIRouter(prefix="/goals", tags=["goals"], responses=ERROR_RESPONSES)


@router.post("", response_model=GoalResponse, status_code=201)
async def create_goal(
    payload: GoalRequest,
    user_id: str = Depends(get_current_user_id),
    store: GoalStore = Depends(get_goal_store)
):
    """Создает цель вместе с ответами на пользовательские поля"""
    return await store.create(user_id, payload)


@router.get("", response_model=PageResponse[GoalResponse])
async def list_goals(
    page_request: PageRequest = Depends(get_page_request),
    status: Optional[GoalStatus] = Query(None, description="Filter by status"),
    type_id: Optional[uuid.UUID] = Query(None, alias="typeId", description="Filter by goal type"),
    user_id: str = Depends(get_current_user_id),
    store: GoalStore = Depends(get_goal_store)
):
    """
    Получает список целей с пагинацией

    Args:
        status: Фильтр по статусу (опционально)
        typeId: Фильтр по типу цели (опционально)
    """
    return await store.list(user_id, page_request, status=status, type_id=type_id)


@router.get("/{goal_id}", response_model=GoalResponse)
async def get_goal(
    goal_id: uuid.UUID,
    user_id: str = Depends(get_current_user_id),
    store: GoalStore = Depends(get_goal_store)
):
    return await store.get(goal_id, user_id)


@router.put("/{goal_id}", response_model=GoalResponse)
async def update_goal(
    goal_id: uuid.UUID,
    payload: GoalRequest,
    user_id: str = Depends(get_current_user_id),
    store: GoalStore = Depends(get_goal_store)
):
    """Omitting customAnswers keeps the stored answers"""
    return await store.update(goal_id, user_id, payload)


@router.delete("/{goal_id}", status_code=204)
async def delete_goal(
    goal_id: uuid.UUID,
    user_id: str = Depends(get_current_user_id),
    store: GoalStore = Depends(get_goal_store)
):
    await store.delete(goal_id, user_id)
    return Response(status_code=204)
