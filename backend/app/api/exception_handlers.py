"""
Maps the allocation error taxonomy onto HTTP responses.
"""

from fastapi import Request
from fastapi.responses import JSONResponse

from app.core.exceptions import AllocationError
from app.core.logging import get_logger

logger = get_logger(__name__)


async def allocation_error_handler(request: Request, exc: AllocationError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("allocation_error", error=exc.kind, detail=exc.message, **exc.context)
    else:
        logger.info("allocation_rejected", error=exc.kind, detail=exc.message, **exc.context)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


EXCEPTION_HANDLERS = {
    AllocationError: allocation_error_handler,
}


def register_exception_handlers(app) -> None:
    for exception_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exception_class, handler)
