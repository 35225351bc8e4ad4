"""
Custom Field Definitions API Endpoints Module
"""
import uuid
from typing import List

from fastapi import APIRouter, Depends, Response

from api.dependencies import get_current_user_id, get_custom_field_definition_store
from api.errors import ERROR_RESPONSES
from schemas import CustomFieldDefinitionRequest, CustomFieldDefinitionResponse
from services.goals import CustomFieldDefinitionStore

router = APIRouter(tags=["custom-fields"], responses=ERROR_RESPONSES)


@router.post(
    "/goal-types/{type_id}/custom-fields",
    response_model=CustomFieldDefinitionResponse,
    status_code=201
)
async def create_custom_field(
    type_id: uuid.UUID,
    payload: CustomFieldDefinitionRequest,
    user_id: str = Depends(get_current_user_id),
    store: CustomFieldDefinitionStore = Depends(get_custom_field_definition_store)
):
    return await store.create(type_id, user_id, payload)


@router.get("/goal-types/{type_id}/custom-fields", response_model=List[CustomFieldDefinitionResponse])
async def list_custom_fields(
    type_id: uuid.UUID,
    user_id: str = Depends(get_current_user_id),
    store: CustomFieldDefinitionStore = Depends(get_custom_field_definition_store)
):
    return await store.list_for_type(type_id, user_id)


@router.get("/custom-fields/{definition_id}", response_model=CustomFieldDefinitionResponse)
async def get_custom_field(
    definition_id: uuid.UUID,
    user_id: str = Depends(get_current_user_id),
    store: CustomFieldDefinitionStore = Depends(get_custom_field_definition_store)
):
    return await store.get(definition_id, user_id)


@router.put("/custom-fields/{definition_id}", response_model=CustomFieldDefinitionResponse)
async def update_custom_field(
    definition_id: uuid.UUID,
    payload: CustomFieldDefinitionRequest,
    user_id: str = Depends(get_current_user_id),
    store: CustomFieldDefinitionStore = Depends(get_custom_field_definition_store)
):
    return await store.update(definition_id, user_id, payload)


@router.delete("/custom-fields/{definition_id}", status_code=204)
async def delete_custom_field(
    definition_id: uuid.UUID,
    user_id: str = Depends(get_current_user_id),
    store: CustomFieldDefinitionStore = Depends(get_custom_field_definition_store)
):
    """Existing answers for the field are removed with it"""
    await store.delete(definition_id, user_id)
    return Response(status_code=204)
