"""
Goal Types API Endpoints Module
Thin wrappers over GoalTypeStore; levelNumber is always server-assigned.
"""
import uuid

from fastapi import APIRouter, Depends, Response

from api.dependencies import get_current_user_id, get_goal_type_store, get_page_request
from api.errors import ERROR_RESPONSES
from schemas import GoalTypeRequest, GoalTypeResponse, PageRequest, PageResponse
from services.goals import GoalTypeStore

router = APIRouter(prefix="/goal-types", tags=["goal-types"], responses=ERROR_RESPONSES)


@router.post("", response_model=GoalTypeResponse, status_code=201)
async def create_goal_type(
    payload: GoalTypeRequest,
    user_id: str = Depends(get_current_user_id),
    store: GoalTypeStore = Depends(get_goal_type_store)
):
    """Создает тип цели на уровне max + 1"""
    return await store.create(user_id, payload)


@router.get("", response_model=PageResponse[GoalTypeResponse])
async def list_goal_types(
    page_request: PageRequest = Depends(get_page_request),
    user_id: str = Depends(get_current_user_id),
    store: GoalTypeStore = Depends(get_goal_type_store)
):
    return await store.list(user_id, page_request)


@router.get("/{type_id}", response_model=GoalTypeResponse)
async def get_goal_type(
    type_id: uuid.UUID,
    user_id: str = Depends(get_current_user_id),
    store: GoalTypeStore = Depends(get_goal_type_store)
):
    return await store.get(type_id, user_id)


@router.put("/{type_id}", response_model=GoalTypeResponse)
async def update_goal_type(
    type_id: uuid.UUID,
    payload: GoalTypeRequest,
    user_id: str = Depends(get_current_user_id),
    store: GoalTypeStore = Depends(get_goal_type_store)
):
    """Title and field set are replaced; fields are matched by key"""
    return await store.update(type_id, user_id, payload)


@router.delete("/{type_id}", status_code=204)
async def delete_goal_type(
    type_id: uuid.UUID,
    user_id: str = Depends(get_current_user_id),
    store: GoalTypeStore = Depends(get_goal_type_store)
):
    """Удаляет тип вместе с целями и ответами, уровни выше сдвигаются вниз"""
    await store.delete(type_id, user_id)
    return Response(status_code=204)
