import logging

from fastapi import FastAPI

from theater_booking.api.errors import wizard_error_handler
from theater_booking.api.v1.wizards import router as wizards_router
from theater_booking.application.exceptions import WizardError
from theater_booking.core.config import settings


class ContextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        extras = []
        for key in ("wizard_id", "step", "booking_id", "service", "phase", "reason", "error"):
            value = getattr(record, key, None)
            if value not in (None, ""):
                extras.append(f"{key}={value}")
        base = super().format(record)
        if extras:
            return f"{base} | " + " ".join(extras)
        return base


handler = logging.StreamHandler()
handler.setFormatter(ContextFormatter("%(levelname)s:%(name)s:%(message)s"))

root = logging.getLogger()
root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
root.handlers.clear()
root.addHandler(handler)

app = FastAPI(title=f"{settings.BUSINESS_NAME} Booking Wizard", version="1.0.0")

app.add_exception_handler(WizardError, wizard_error_handler)
app.include_router(wizards_router, prefix="/v1", tags=["wizards"])


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
