"""
Unprotected health endpoint for load balancers and monitoring.
"""

from fastapi import APIRouter

from ..config import get_config
from ..models.api.common import HealthResponse

router = APIRouter(tags=["Status"])


@router.get(
  "/health",
  response_model=HealthResponse,
  operation_id="getHealth",
  summary="Health Check",
  description="Service health check endpoint for monitoring and load balancers",
)
async def health() -> HealthResponse:
  return HealthResponse(status="healthy", environment=get_config().ENVIRONMENT)
