import logging

from fastapi import FastAPI

from booking_agent.api.debug import router as debug_router
from booking_agent.api.webhooks import router as webhooks_router
from booking_agent.core.config import settings

class ContextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        extras = []
        for key in ("event_id", "user_id", "step", "status", "attempt", "booking_id", "payment_id", "reason"):
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

app = FastAPI(title="WhatsApp Booking Agent", version="1.0.0")

app.include_router(webhooks_router, tags=["webhooks"])
app.include_router(debug_router, tags=["debug"])


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
