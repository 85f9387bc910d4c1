# fleetcomply/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from fleetcomply.api import (
    auth,
    vehicles,
    compliance,
    spill_kits,
    maintenance,
    templates,
)
from fleetcomply.core.config import settings as app_settings
from fleetcomply.core.dependencies import init_models
from fleetcomply.core.logging_config import configure_logging

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(app_settings.LOG_LEVEL)
    await init_models()
    logger.info("FleetComply API started (%s)", app_settings.APP_ENV)
    yield

app = FastAPI(title="FleetComply - Fleet Compliance & Maintenance", lifespan=lifespan)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Register Routers ---
app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(vehicles.router, prefix="/vehicles", tags=["vehicles"])
app.include_router(compliance.router, prefix="/compliance", tags=["compliance"])
app.include_router(spill_kits.router, prefix="/spill-kits", tags=["spill-kits"])
app.include_router(maintenance.router, prefix="/maintenance", tags=["maintenance"])
app.include_router(templates.router, prefix="/templates", tags=["templates"])

# Public bucket URLs resolve here
app.mount(
    app_settings.PUBLIC_BASE_URL,
    StaticFiles(directory=app_settings.STORAGE_ROOT, check_dir=False),
    name="storage",
)

@app.get('/')
async def hello():
    return {"msg": "FleetComply API is running", "env": app_settings.APP_ENV}
