"""OTA Spaces Portal API main application module."""

from datetime import datetime, timezone
from importlib.metadata import PackageNotFoundError, version

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from otaportal.config import get_config
from otaportal.config.logging import get_logger
from otaportal.exceptions import ConfigurationError, PortalError
from otaportal.middleware.database import DatabaseSessionMiddleware
from otaportal.middleware.logging import StructuredLoggingMiddleware, get_request_id
from otaportal.routers import spaces_router, status_router

logger = get_logger("otaportal.api")


def get_app_version() -> str:
  """Get the application version from installed package metadata."""
  try:
    return version("otaportal-service")
  except PackageNotFoundError:
    return "unknown"


def _error_payload(
  request: Request,
  detail: str,
  code: str,
  details: dict | None = None,
  timestamp: str | None = None,
) -> dict:
  payload = {
    "detail": detail,
    "code": code,
    "request_id": get_request_id(request),
    "timestamp": timestamp or datetime.now(timezone.utc).isoformat(),
  }
  if details:
    payload["details"] = details
  return payload


def create_app() -> FastAPI:
  """
  Create the FastAPI app and include the routers.

  Returns:
      FastAPI: The configured FastAPI application.
  """
  config = get_config()

  app = FastAPI(
    title="OTA Spaces Portal API",
    version=get_app_version(),
    description="Multi-tenant firmware file spaces with direct-to-store uploads.",
    openapi_url="/openapi.json",
  )

  @app.on_event("startup")
  async def startup_event():
    """Validate configuration on startup."""
    logger.info("Starting OTA Spaces Portal API...")

    errors = config.validate()
    if errors:
      for error in errors:
        logger.error(f"Configuration validation failed: {error}")
      if config.is_production():
        # In production, fail fast on invalid configuration
        raise ConfigurationError("environment", "; ".join(errors))
      logger.warning("Continuing with invalid configuration (non-production)")
    else:
      logger.info(f"Configuration validated successfully: {config.summary()}")

    logger.info("OTA Spaces Portal API startup complete")

  app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["Accept", "Content-Type", "Authorization", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
    max_age=3600,
  )

  # Order matters: first added = innermost layer
  app.add_middleware(DatabaseSessionMiddleware)
  app.add_middleware(StructuredLoggingMiddleware)

  @app.middleware("http")
  async def security_headers_middleware(request: Request, call_next):
    """Add security headers to all responses."""
    response = await call_next(request)

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    if config.is_production() or config.is_staging():
      response.headers["Strict-Transport-Security"] = (
        "max-age=31536000; includeSubDomains"
      )
    if request.url.path.startswith("/api/"):
      response.headers["Cache-Control"] = "no-store"
    return response

  @app.exception_handler(PortalError)
  async def portal_exception_handler(request: Request, exc: PortalError) -> JSONResponse:
    """Map domain errors to their HTTP status with an ErrorResponse body."""
    if exc.status_code >= 500:
      logger.error(
        f"{exc.error_code}: {exc.message}",
        extra={
          "request_id": get_request_id(request),
          "metadata": exc.details,
        },
      )
      # Internal error text stays in the logs
      content = _error_payload(
        request, "Internal server error", exc.error_code, timestamp=exc.timestamp
      )
    else:
      content = _error_payload(
        request, exc.message, exc.error_code, exc.details, exc.timestamp
      )
    return JSONResponse(status_code=exc.status_code, content=content)

  @app.exception_handler(RequestValidationError)
  async def validation_exception_handler(
    request: Request, exc: RequestValidationError
  ) -> JSONResponse:
    """Schema violations are client errors: 400 with field-level detail."""
    errors = [
      {
        "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
        "message": err.get("msg", "Invalid value"),
        "type": err.get("type", "value_error"),
      }
      for err in exc.errors()
    ]
    first = errors[0] if errors else None
    detail = (
      f"{first['field']}: {first['message']}"
      if first and first["field"]
      else "Invalid request"
    )
    return JSONResponse(
      status_code=status.HTTP_400_BAD_REQUEST,
      content=_error_payload(request, detail, "VALIDATION_ERROR", {"errors": errors}),
    )

  @app.exception_handler(Exception)
  async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler returning generic error and request ID.

    Internal exception details are logged server-side; clients receive a generic
    message with a correlation identifier.
    """
    request_id = get_request_id(request)
    logger.error("Unhandled exception", extra={"request_id": request_id}, exc_info=True)

    return JSONResponse(
      status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
      content={"detail": "Internal server error", "request_id": request_id},
    )

  app.include_router(status_router)
  app.include_router(spaces_router)

  return app


app = create_app()
