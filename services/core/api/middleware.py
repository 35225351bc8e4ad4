"""
API Middleware Module
CORS and request logging middleware
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
import time
import uuid

from config import ALLOWED_ORIGINS, USER_ID_HEADER
from logging_config import bind_request_context, clear_request_context, http_request_summary

REQUEST_ID_HEADER = "X-Request-Id"


def configure_cors(app: FastAPI) -> None:
    """Only origins listed in ALLOWED_ORIGINS (comma separated)"""
    origins = [origin.strip() for origin in ALLOWED_ORIGINS.split(",") if origin.strip()]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", USER_ID_HEADER, REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER, "X-Process-Time"]
    )


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Binds request id and acting user to every log line of the request,
    then logs a one-line summary.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        clear_request_context()
        bind_request_context(request_id=request_id, user_id=request.headers.get(USER_ID_HEADER))
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
            process_time = time.perf_counter() - start_time

            http_request_summary(
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(process_time * 1000, 2)
            )
        finally:
            clear_request_context()

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Process-Time"] = f"{process_time:.4f}"
        return response
