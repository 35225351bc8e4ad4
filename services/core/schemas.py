from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Generic, List, Optional, TypeVar
from datetime import datetime
from uuid import UUID
import math

from config import DEFAULT_PAGE_SIZE
from models import CustomFieldType, GoalStatus

T = TypeVar("T")


class ApiModel(BaseModel):
    """camelCase on the wire, snake_case in Python"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# =============================================================================
# Requests (server-assigned fields are not accepted)
# =============================================================================

class CustomFieldDefinitionRequest(ApiModel):
    key: str
    label: str
    type: CustomFieldType
    required: bool = False
    placeholder: Optional[str] = None


class GoalTypeRequest(ApiModel):
    """levelNumber is assigned by the server and ignored if sent"""
    title: str
    custom_fields: List[CustomFieldDefinitionRequest] = Field(default_factory=list)


class CustomFieldAnswerRequest(ApiModel):
    field_definition_id: UUID
    value: Optional[str] = None


class CustomFieldAnswerUpdateRequest(ApiModel):
    """Only the value can change; the definition is fixed at creation"""
    value: Optional[str] = None


class GoalRequest(ApiModel):
    title: str
    description: Optional[str] = None
    type_id: UUID
    status: GoalStatus = GoalStatus.NOT_STARTED
    parent_goal_id: Optional[UUID] = None
    # None keeps existing answers on update (they are re-validated),
    # a list replaces them
    custom_answers: Optional[List[CustomFieldAnswerRequest]] = None


class PageRequest(ApiModel):
    page: int = 0
    size: int = DEFAULT_PAGE_SIZE
    sort_by: Optional[str] = None
    direction: Optional[str] = None


# =============================================================================
# Responses
# =============================================================================

class CustomFieldDefinitionResponse(ApiModel):
    id: UUID
    goal_type_id: UUID
    key: str
    label: str
    type: CustomFieldType
    required: bool
    placeholder: Optional[str] = None


class GoalTypeResponse(ApiModel):
    id: UUID
    title: str
    level_number: int
    custom_fields: List[CustomFieldDefinitionResponse] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CustomFieldAnswerResponse(ApiModel):
    """Answer denormalized with its definition metadata at read time"""
    id: UUID
    goal_id: UUID
    field_definition_id: UUID
    field_key: str
    field_label: str
    field_type: CustomFieldType
    required: bool
    value: Optional[str] = None


class GoalResponse(ApiModel):
    id: UUID
    title: str
    description: Optional[str] = None
    type_id: UUID
    type_title: str
    level_number: int
    status: GoalStatus
    parent_goal_id: Optional[UUID] = None
    user_id: str
    custom_answers: List[CustomFieldAnswerResponse] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PageResponse(ApiModel, Generic[T]):
    content: List[T]
    total_elements: int
    total_pages: int
    page_number: int
    page_size: int
    first: bool
    last: bool

    @classmethod
    def of(cls, content: List[T], total_elements: int, page_number: int, page_size: int) -> "PageResponse[T]":
        total_pages = math.ceil(total_elements / page_size)
        return cls(
            content=content,
            total_elements=total_elements,
            total_pages=total_pages,
            page_number=page_number,
            page_size=page_size,
            first=page_number == 0,
            last=page_number >= total_pages - 1,
        )


class FieldErrorResponse(BaseModel):
    field: str
    message: str
    rejectedValue: Optional[object] = None


class ErrorBody(BaseModel):
    kind: str
    code: str
    message: str
    details: dict = Field(default_factory=dict)
    fieldErrors: List[FieldErrorResponse] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    error: ErrorBody
