"""
Entry point for the Lightsail Resource API.

Run locally:
    uvicorn lightsail_provider.main:app --reload

Interactive docs available at:
    http://localhost:8000/docs  (Swagger UI)
    http://localhost:8000/redoc (ReDoc)
"""

import logging

from fastapi import FastAPI

from lightsail_provider.apis.auth import router as auth_router
from lightsail_provider.apis.instance import router as instance_router
from lightsail_provider.apis.lb_attachment import router as lb_attachment_router

# ── Logging ───────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
)

# ── FastAPI app ───────────────────────────────────────────────────────────────
app = FastAPI(
    title="Lightsail Resource API",
    description=(
        "Lifecycle management for AWS Lightsail instances and load-balancer "
        "attachments. All endpoints (except `/auth/token` and `/health`) require "
        "a valid JWT Bearer token."
    ),
    version="1.0.0",
    contact={"name": "Platform Engineering"},
    license_info={"name": "MIT"},
)

# ── Routers ───────────────────────────────────────────────────────────────────
app.include_router(auth_router)
app.include_router(instance_router)
app.include_router(lb_attachment_router)


# ── Health check ──────────────────────────────────────────────────────────────
@app.get("/health", tags=["Health"], summary="Health check")
def health() -> dict:
    """Returns 200 OK when the service is running."""
    return {"status": "ok"}
