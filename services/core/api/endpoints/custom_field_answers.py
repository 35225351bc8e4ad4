"""
Custom Field Answers API Endpoints Module
"""
import uuid
from typing import List

from fastapi import APIRouter, Depends, Response

from api.dependencies import get_current_user_id, get_custom_field_answer_store
from api.errors import ERROR_RESPONSES
from schemas import CustomFieldAnswerRequest, CustomFieldAnswerResponse, CustomFieldAnswerUpdateRequest
from services.goals import CustomFieldAnswerStore

router = APIRouter(tags=["custom-answers"], responses=ERROR_RESPONSES)


@router.post(
    "/goals/{goal_id}/custom-answers",
    response_model=CustomFieldAnswerResponse,
    status_code=201
)
async def create_custom_answer(
    goal_id: uuid.UUID,
    payload: CustomFieldAnswerRequest,
    user_id: str = Depends(get_current_user_id),
    store: CustomFieldAnswerStore = Depends(get_custom_field_answer_store)
):
    return await store.create(goal_id, user_id, payload)


@router.get("/goals/{goal_id}/custom-answers", response_model=List[CustomFieldAnswerResponse])
async def list_custom_answers(
    goal_id: uuid.UUID,
    user_id: str = Depends(get_current_user_id),
    store: CustomFieldAnswerStore = Depends(get_custom_field_answer_store)
):
    return await store.list_for_goal(goal_id, user_id)


@router.get("/custom-answers/{answer_id}", response_model=CustomFieldAnswerResponse)
async def get_custom_answer(
    answer_id: uuid.UUID,
    user_id: str = Depends(get_current_user_id),
    store: CustomFieldAnswerStore = Depends(get_custom_field_answer_store)
):
    return await store.get(answer_id, user_id)


@router.put("/custom-answers/{answer_id}", response_model=CustomFieldAnswerResponse)
async def update_custom_answer(
    answer_id: uuid.UUID,
    payload: CustomFieldAnswerUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    store: CustomFieldAnswerStore = Depends(get_custom_field_answer_store)
):
    return await store.update(answer_id, user_id, payload)


@router.delete("/custom-answers/{answer_id}", status_code=204)
async def delete_custom_answer(
    answer_id: uuid.UUID,
    user_id: str = Depends(get_current_user_id),
    store: CustomFieldAnswerStore = Depends(get_custom_field_answer_store)
):
    """Answers of required fields cannot be deleted"""
    await store.delete(answer_id, user_id)
    return Response(status_code=204)
