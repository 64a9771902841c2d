from __future__ import annotations

from pydantic import BaseModel, Field


class HealthOut(BaseModel):
    status: str = Field(..., description="ok | degraded")
    app: str
    version: str
    database: str = Field(..., description="connected | unavailable")
    error: str | None = None
