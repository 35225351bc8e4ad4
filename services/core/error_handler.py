"""
Centralized Error Handling for the Goal Schema Service

- store_operation: deadline + transparent retry of transient store errors
  + wrapping of unclassified failures into an opaque InternalError
- handle_errors: logging decorator for side channels that must never break
  the request (event sinks)
"""

import asyncio
import random
from functools import wraps
from typing import Any, Callable, TypeVar

from sqlalchemy.exc import DBAPIError

import config
from exceptions import GoalSchemaError, InternalError, TransientStoreError
from logging_config import get_logger, log_error

logger = get_logger(__name__)
T = TypeVar('T')

# SQLSTATE codes worth a second attempt: serialization_failure, deadlock_detected
TRANSIENT_SQLSTATES = {"40001", "40P01"}

JITTER = 0.1  # 10% random jitter


def is_transient_store_error(exc: BaseException) -> bool:
    """
    Determine if a store error is transient and the transaction may be replayed.

    Domain errors are never transient.
    """
    if isinstance(exc, TransientStoreError):
        return True

    if isinstance(exc, DBAPIError):
        if exc.connection_invalidated:
            return True
        orig = exc.orig
        sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
        if sqlstate in TRANSIENT_SQLSTATES:
            return True
        # SQLite reports writer contention this way
        if "database is locked" in str(orig):
            return True

    return False


def calculate_backoff(attempt: int, base_delay: float | None = None) -> float:
    """
    Exponential backoff with jitter.

    Attempt 0: ~base, attempt 1: ~2*base, attempt 2: ~4*base
    """
    base = config.STORE_RETRY_BACKOFF_SECONDS if base_delay is None else base_delay
    delay = base * (2 ** attempt)
    jitter_amount = random.uniform(-JITTER * delay, JITTER * delay)
    return max(delay + jitter_amount, 0.0)


def store_operation(operation: str):
    """
    Decorator for store methods that own a transaction.

    Each attempt runs the whole method again (new UnitOfWork), bounded by
    STORE_OPERATION_TIMEOUT_SECONDS. Cancellation and timeouts roll the
    transaction back through UnitOfWork.__aexit__.

    Usage:
        @store_operation("goal_type.delete")
        async def delete(self, type_id, owner_user_id): ...
    """
    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            attempts = max(1, config.STORE_RETRY_ATTEMPTS)
            for attempt in range(attempts):
                try:
                    return await asyncio.wait_for(
                        func(*args, **kwargs),
                        timeout=config.STORE_OPERATION_TIMEOUT_SECONDS
                    )
                except GoalSchemaError:
                    raise
                except asyncio.TimeoutError as e:
                    log_error(e, {"operation": operation, "attempt": attempt + 1}, "WARNING")
                    raise InternalError("The operation did not complete in time") from e
                except Exception as e:
                    if is_transient_store_error(e) and attempt + 1 < attempts:
                        delay = calculate_backoff(attempt)
                        logger.warning(
                            "store_operation_retry",
                            operation=operation,
                            attempt=attempt + 1,
                            error_type=type(e).__name__,
                            delay_seconds=round(delay, 3)
                        )
                        await asyncio.sleep(delay)
                        continue
                    log_error(e, {"operation": operation, "attempt": attempt + 1})
                    raise InternalError() from e
            raise InternalError()

        return wrapper

    return decorator


def handle_errors(
    default: Any = None,
    context: dict | None = None,
    log_level: str = "ERROR",
    reraise: bool = False
):
    """
    Decorator for automatic error handling of coroutine functions.

    Usage:
        @handle_errors(default=None, context={"sink": "notifications"})
        async def publish(event):
            ...
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def async_wrapper(*args, **kwargs) -> T:
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                ctx = dict(context or {})
                ctx.update({"function": func.__name__})
                log_error(e, ctx, log_level)
                if reraise:
                    raise
                return default

        return async_wrapper

    return decorator
