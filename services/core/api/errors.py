"""
Exception -> HTTP response mapping.

Every failure leaves the service in the same envelope:
{"error": {"kind", "code", "message", "details", "fieldErrors"?}}
"""
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from exceptions import (
    EXCEPTION_TO_STATUS,
    FieldViolation,
    GoalSchemaError,
    InternalError,
    ValidationError,
)
from logging_config import get_logger, log_error
from schemas import ErrorResponse

logger = get_logger(__name__)

# Location prefixes FastAPI puts in front of the offending field name
_LOCATION_ROOTS = {"body", "query", "path", "header"}


def status_for(exc: GoalSchemaError) -> int:
    for exception_class in type(exc).__mro__:
        if exception_class in EXCEPTION_TO_STATUS:
            return EXCEPTION_TO_STATUS[exception_class]
    return 500


def error_response(exc: GoalSchemaError) -> JSONResponse:
    return JSONResponse(status_code=status_for(exc), content=jsonable_encoder(exc.to_dict()))


def violations_from_request_errors(errors) -> list[FieldViolation]:
    violations = []
    for error in errors:
        location = [str(part) for part in error.get("loc", ())]
        if location and location[0] in _LOCATION_ROOTS:
            location = location[1:]
        violations.append(FieldViolation(
            field=".".join(location) or "body",
            message=error.get("msg", "Invalid value"),
            rejected_value=error.get("input")
        ))
    return violations


async def goal_schema_error_handler(request: Request, exc: GoalSchemaError) -> JSONResponse:
    logger.info(
        "request_rejected",
        path=request.url.path,
        kind=exc.kind,
        code=type(exc).__name__,
        message=exc.message
    )
    return error_response(exc)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Payload shape errors use the same format as business validation"""
    error = ValidationError("Input validation failed", violations=violations_from_request_errors(exc.errors()))
    return error_response(error)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    log_error(exc, {"path": request.url.path, "method": request.method})
    return error_response(InternalError())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(GoalSchemaError, goal_schema_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)


# OpenAPI documentation of the error envelope, shared by every router
ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Validation failed"},
    401: {"model": ErrorResponse, "description": "Missing user identity"},
    403: {"model": ErrorResponse, "description": "Entity belongs to another user"},
    404: {"model": ErrorResponse, "description": "Entity not found"},
    409: {"model": ErrorResponse, "description": "Uniqueness conflict"},
    500: {"model": ErrorResponse, "description": "Unexpected error"},
}
