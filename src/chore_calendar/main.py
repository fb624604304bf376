import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .attachments import AttachmentPipeline
from .errors import (
    ChoreCalendarError,
    NotFoundError,
    QuotaExceededError,
    RecipeLookupError,
    StoreUnavailableError,
    UploadFailedError,
    UploadNotConfiguredError,
    ValidationError,
)
from .logging_setup import configure_logging
from .recipes import RecipeClient, get_recipe_client
from .repositories import get_repositories
from .routers import chores as chores_router
from .routers import comments as comments_router
from .routers import recipes as recipes_router
from .scheduler import QuotaScheduler
from .settings import Settings, get_settings
from .uploads import ImageHost, get_image_host

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {"name": "users", "description": "Household members chores can be assigned to."},
    {
        "name": "chores",
        "description": "Dated chores grouped by week, with a weekly cap on 'make your own' days.",
    },
    {"name": "comments", "description": "Per-date comments with optional photos."},
    {"name": "recipes", "description": "Recipe suggestions for planned meals."},
]

# Most specific first; the first isinstance match wins
_STATUS_BY_ERROR = [
    (ValidationError, 400),
    (NotFoundError, 404),
    (QuotaExceededError, 409),
    (UploadNotConfiguredError, 503),
    (UploadFailedError, 502),
    (RecipeLookupError, 502),
    (StoreUnavailableError, 503),
]


def _error_status(exc: ChoreCalendarError) -> int:
    for cls, code in _STATUS_BY_ERROR:
        if isinstance(exc, cls):
            return code
    return 500


# PUBLIC_INTERFACE
def create_app(
    settings: Optional[Settings] = None,
    image_host: Optional[ImageHost] = None,
    recipe_client: Optional[RecipeClient] = None,
) -> FastAPI:
    """
    Build the application and its stores once.

    ``image_host`` and ``recipe_client`` override the collaborators derived
    from settings (used by tests).
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Chore Calendar Backend",
        description="Household chore calendar with weekly 'make your own' limits and a photo comment log.",
        version="0.1.0",
        openapi_tags=openapi_tags,
    )

    chore_repo, comment_repo = get_repositories(settings)
    host = image_host if image_host is not None else get_image_host(settings)
    app.state.settings = settings
    app.state.scheduler = QuotaScheduler.from_settings(chore_repo, settings)
    app.state.pipeline = AttachmentPipeline.from_settings(comment_repo, host, settings)
    app.state.recipes = recipe_client if recipe_client is not None else get_recipe_client(settings)

    # Configure CORS based on settings (.env -> CORS_ALLOW_ORIGINS), with '*' fallback
    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["*"],
    )

    # Global exception handlers for consistent JSON on validation errors
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """
        Return a consistent JSON structure for request validation errors.

        Response format:
            {
                "error": "ValidationError",
                "detail": [... pydantic/fastapi error details ...],
                "message": "Request validation failed"
            }
        """
        return JSONResponse(
            status_code=422,
            content={
                "error": "ValidationError",
                "message": "Request validation failed",
                "detail": jsonable_errors(exc),
            },
        )

    @app.exception_handler(ChoreCalendarError)
    async def domain_exception_handler(request: Request, exc: ChoreCalendarError) -> JSONResponse:
        """
        Map scheduler and comment pipeline failures onto HTTP status codes.

        Response format:
            {"error": "<ErrorClass>", "message": "..."}
        plus cap/week_start/week_end for QuotaExceededError.
        """
        content: Dict[str, Any] = {"error": type(exc).__name__, "message": exc.message}
        if isinstance(exc, QuotaExceededError):
            content.update(
                cap=exc.cap,
                week_start=exc.week.start.isoformat(),
                week_end=exc.week.end.isoformat(),
            )
        code = _error_status(exc)
        if code >= 500:
            logger.warning("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
        return JSONResponse(status_code=code, content=content)

    # PUBLIC_INTERFACE
    @app.get("/", summary="Health Check", tags=["health"])
    def health_check():
        """
        Health check endpoint.

        Returns:
            A JSON object indicating service health.
        """
        return {
            "message": "Healthy",
            "backend": settings.persistence_backend,
            "uploads": settings.uploads_configured or image_host is not None,
        }

    # PUBLIC_INTERFACE
    @app.get("/api/users", summary="List Household Members", tags=["users"], response_model=List[str])
    def list_users() -> List[str]:
        """Return the configured household member names."""
        return list(settings.household_members)

    # Include routers
    app.include_router(chores_router.router)
    app.include_router(comments_router.router)
    app.include_router(recipes_router.router)

    logger.info(
        "Chore calendar ready backend=%s quota=%s/%s per week",
        settings.persistence_backend,
        settings.quota_cap,
        settings.quota_category,
    )
    return app


def jsonable_errors(exc: RequestValidationError) -> List[Dict[str, Any]]:
    """Drop non-serializable 'ctx'/'input' values pydantic attaches to errors."""
    out = []
    for err in exc.errors():
        item = {k: v for k, v in err.items() if k not in ("ctx", "input")}
        out.append(item)
    return out


app = create_app()
