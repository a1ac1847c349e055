from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from rendplus.api import notifications
from rendplus.config import settings
from rendplus.logging import setup_logging

setup_logging(settings.log_level.upper())

app = FastAPI(title="Rendplus Notifications API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(notifications.router, prefix="/api/notifications", tags=["notifications"])

@app.get("/health")
def health():
    return {"status": "ok"}
