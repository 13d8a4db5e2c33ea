"""
postdesk entry point.

On startup the authentication provider, the scope policy and the blob store
are registered on ``app.state``, and a default admin is provisioned when the
database has no users yet.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from postdesk.api.v1.helpers.authentication import BearerAuthenticationProvider
from postdesk.api.v1.helpers.responses import (
    APIResponse,
    format_validation_errors,
)
from postdesk.api.v1.router import api_router
from postdesk.bootstrap import ensure_default_admin
from postdesk.config import settings
from postdesk.core.authorization import ScopePolicy
from postdesk.core.storage import S3BlobStore
from postdesk.db.session import dispose_engine, get_session_local
from logging import getLogger, Filter
import logging

logger = getLogger(__name__)
logging.getLogger("postdesk").setLevel(settings.log_level.upper())


class HealthCheckFilter(Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return record.getMessage().find("/health") == -1


logging.getLogger("uvicorn.access").addFilter(HealthCheckFilter())


app = FastAPI(title=settings.app_name, debug=settings.debug, redirect_slashes=False)


@app.on_event("startup")
async def startup_event():
    try:
        logger.info("--- Starting postdesk startup ---")

        app.state.authentication_provider = BearerAuthenticationProvider()
        app.state.authorization_provider = ScopePolicy.from_settings(settings)
        app.state.blob_store = S3BlobStore(settings)

        AsyncSessionLocal = get_session_local()
        async with AsyncSessionLocal() as db:
            try:
                await ensure_default_admin(db)
            except Exception as e:
                logger.error(f"Warning: Error during bootstrap: {e}")

        logger.info("--- postdesk startup completed ---")
    except Exception:
        logger.exception("Warning: Failed to setup resources")


@app.on_event("shutdown")
async def shutdown_event():
    try:
        logger.info("--- Server shutting down! ---")
        await dispose_engine()
        logger.info("--- Database connections closed. ---")
    except Exception as e:
        logger.error(f"Warning: Error during shutdown: {e}")


# ---------------------------------------------------------------------------
# Error envelopes
# ---------------------------------------------------------------------------


def _envelope(status_code: int, envelope: APIResponse) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content=envelope.model_dump(exclude_none=True)
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    # APIError already carries a rendered envelope
    if isinstance(exc.detail, dict) and "success" in exc.detail:
        return JSONResponse(
            status_code=exc.status_code, content=exc.detail, headers=exc.headers
        )
    return _envelope(
        exc.status_code, APIResponse(success=False, message=str(exc.detail))
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return _envelope(
        422,
        APIResponse(
            success=False,
            message="Validation failed",
            errors=format_validation_errors(exc.errors()),
        ),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _envelope(
        500, APIResponse(success=False, message="Server error", error=str(exc))
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=settings.api_prefix)


@app.get("/health")
def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
