import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from theater_booking.application.exceptions import WizardError

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    "validation": 400,
    "coupon": 400,
    "state": 409,
    "conflict": 409,
    "payment": 402,
    "network": 502,
    "submission": 502,
}


async def wizard_error_handler(request: Request, exc: WizardError) -> JSONResponse:
    status = STATUS_BY_KIND.get(exc.kind, 400)
    logger.info(
        "Wizard request rejected",
        extra={"reason": exc.kind, "error": exc.title, "step": request.url.path},
    )
    return JSONResponse(
        status_code=status,
        content={"title": exc.title, "message": exc.message, "kind": exc.kind},
    )
