"""
Domain Exceptions for the Goal Schema Engine

Иерархия исключений для бизнес-логики целей.
Все исключения наследуются от GoalSchemaError и терминальны для запроса:
движок их не ретраит.
"""
from dataclasses import dataclass, asdict
from typing import Any


@dataclass
class FieldViolation:
    """One field-level validation failure"""
    field: str
    message: str
    rejected_value: Any = None

    def to_dict(self) -> dict:
        data = asdict(self)
        return {
            "field": data["field"],
            "message": data["message"],
            "rejectedValue": data["rejected_value"],
        }


class GoalSchemaError(Exception):
    """Базовое исключение для всех ошибок движка"""

    kind = "INTERNAL"

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self):
        """Сериализация в словарь для API response"""
        return {
            "error": {
                "kind": self.kind,
                "code": self.__class__.__name__,
                "message": self.message,
                "details": self.details
            }
        }


class NotFoundError(GoalSchemaError):
    """Сущность отсутствует или не принадлежит пользователю"""

    kind = "NOT_FOUND"

    def __init__(self, resource_type: str, resource_id: Any):
        super().__init__(
            message=f"{resource_type} with id '{resource_id}' not found",
            details={
                "resource_type": resource_type,
                "resource_id": str(resource_id)
            }
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class ValidationError(GoalSchemaError):
    """Нарушено доменное правило или структура входных данных"""

    kind = "VALIDATION"

    def __init__(self, message: str, violations: list[FieldViolation] | None = None, details: dict = None):
        super().__init__(message=message, details=details)
        self.violations = list(violations or [])

    def to_dict(self):
        payload = super().to_dict()
        payload["error"]["fieldErrors"] = [v.to_dict() for v in self.violations]
        return payload


class ConflictError(GoalSchemaError):
    """Нарушение уникальности (ключ поля, ответ, уровень)"""

    kind = "CONFLICT"


class ForbiddenError(GoalSchemaError):
    """Сущность найдена, но принадлежит другому пользователю"""

    kind = "FORBIDDEN"

    def __init__(self, resource_type: str, resource_id: Any, action: str = "access"):
        super().__init__(
            message=f"You don't have permission to {action} this {resource_type}",
            details={
                "resource_type": resource_type,
                "resource_id": str(resource_id)
            }
        )


class UnauthenticatedError(GoalSchemaError):
    """Нет идентичности вызывающего"""

    kind = "UNAUTHENTICATED"

    def __init__(self, message: str = "User is not authenticated"):
        super().__init__(message=message)


class InternalError(GoalSchemaError):
    """Непредвиденная ошибка; детали наружу не отдаются"""

    kind = "INTERNAL"

    def __init__(self, message: str = "An unexpected error occurred"):
        super().__init__(message=message)


class TransientStoreError(Exception):
    """
    Retryable store failure (serialization conflict, deadlock, lost race on
    the level constraint). Never leaves the store adapter.
    """


# =============================================================================
# HTTP Status Mapping
# =============================================================================

# Mapping domain exceptions to HTTP status codes
EXCEPTION_TO_STATUS = {
    NotFoundError: 404,
    ValidationError: 400,
    ConflictError: 409,
    ForbiddenError: 403,
    UnauthenticatedError: 401,
    InternalError: 500,
}
