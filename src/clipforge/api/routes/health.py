"""Liveness endpoint."""

from fastapi import APIRouter
from pydantic import BaseModel

from clipforge import __version__

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    version: str


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    return HealthResponse(status="healthy", version=__version__)
