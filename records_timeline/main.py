"""
FastAPI application entrypoint.

Run locally:  uvicorn records_timeline.main:app --reload
"""

import logging

from fastapi import FastAPI

from records_timeline.api.routes import router
from records_timeline.config import settings
from records_timeline.models.database import Base, engine

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(levelname)s | %(name)s | %(message)s",
)

app = FastAPI(
    title="Patient Records Timeline API",
    description=(
        "Merges a patient's appointments, form submissions, medication orders, "
        "clinical notes and lab results into one chronological timeline."
    ),
    version="1.0.0",
)

app.include_router(router, prefix="/api/v1")


@app.on_event("startup")
def on_startup():
    Base.metadata.create_all(bind=engine)
