from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from imagery.config.settings import Settings
from imagery.database import Base, make_engine, make_session_factory
from imagery.middleware.security import RequestSizeLimitMiddleware
from imagery.routes import admin_router, generate_router, images_router, payment_router, user_router
from imagery.services.ai_provider import build_provider
from imagery.services.stripe_service import build_gateway
import imagery.models  # noqa: F401  registers the tables on Base.metadata
import logging

logger = logging.getLogger(__name__)

_UNSET = object()


def create_app(settings: Settings | None = None, *, image_provider=_UNSET, payment_gateway=_UNSET) -> FastAPI:
    """Build the API around one Settings instance.

    Clients derived from the settings live on `app.state`; tests pass their
    own provider and gateway instead of the real SDK wrappers.
    """
    settings = settings or Settings()

    app = FastAPI(title="Upscale Imagery API")

    engine = make_engine(settings.database_url)
    if engine.dialect.name == "sqlite":
        Base.metadata.create_all(bind=engine)

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)
    app.state.image_provider = build_provider(settings) if image_provider is _UNSET else image_provider
    app.state.payment_gateway = build_gateway(settings) if payment_gateway is _UNSET else payment_gateway

    app.add_middleware(RequestSizeLimitMiddleware, max_body_bytes=settings.MAX_REQUEST_BYTES)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_URL],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        logger.info(f"Rejected malformed request to {request.url.path}: {message}")
        return JSONResponse({"error": f"Invalid request: {message}"}, status_code=400)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.url.path}: {str(exc)}")
        return JSONResponse({"error": "Internal server error"}, status_code=500)

    app.include_router(generate_router, prefix="/api", tags=["generate"])
    app.include_router(payment_router, prefix="/api", tags=["payment"])
    app.include_router(user_router, prefix="/api", tags=["user"])
    app.include_router(images_router, prefix="/api", tags=["images"])
    app.include_router(admin_router, prefix="/api/admin", tags=["admin"])

    @app.get("/api/health")
    async def health_check():
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return app
