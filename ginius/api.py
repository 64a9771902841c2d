from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from ginius import __version__
from ginius.db import Database
from ginius.schemas import HealthOut
from ginius.settings import Settings


router = APIRouter(prefix="/api/v1", tags=["api"])
log = logging.getLogger("uvicorn.error")


def get_db(request: Request) -> Database:
    return request.app.state.db


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


@router.get("/health", response_model=HealthOut, responses={503: {"model": HealthOut}})
async def health(
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    try:
        await db.ping()
    except (SQLAlchemyError, OSError) as e:
        log.error("health database ping failed: %s", e)
        out = HealthOut(
            status="degraded",
            app=settings.app_name,
            version=__version__,
            database="unavailable",
            error=str(e),
        )
        return JSONResponse(status_code=503, content=out.model_dump())
    return HealthOut(status="ok", app=settings.app_name, version=__version__, database="connected")
