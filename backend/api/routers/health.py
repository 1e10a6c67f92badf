"""Health check endpoint."""

from fastapi import APIRouter
from pydantic import BaseModel

from common.config import settings

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    region: str


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Health check endpoint.

    Returns the service status, version and the AWS region deployments
    target. Used by load balancers and monitoring systems.
    """
    return HealthResponse(status="healthy", version="0.1.0", region=settings.aws_region)
