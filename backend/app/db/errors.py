"""
Persistence failure boundary: anything the driver or SQLAlchemy raises leaves
the store layer as StoreUnavailable. Domain errors pass through untouched.
"""

import functools

from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import StoreUnavailable
from app.core.logging import get_logger

logger = get_logger(__name__)


def store_operation(fn):
    @functools.wraps(fn)
    async def wrapper(*args, **kwargs):
        try:
            return await fn(*args, **kwargs)
        except (SQLAlchemyError, OSError) as exc:
            logger.error("store_operation_failed", operation=fn.__qualname__, error=str(exc))
            raise StoreUnavailable(cause=exc, operation=fn.__qualname__) from exc

    return wrapper
