from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse

from propdesk.api.admin import router as admin_router
from propdesk.api.dashboard import router as dashboard_router
from propdesk.api.health import router as health_router
from propdesk.api.metrics import router as metrics_router
from propdesk.config import GlobalConfig
from propdesk.db.session import SourceRegistry
from propdesk.errors import (
    BackendError,
    ChallengeNotFound,
    MutationFailed,
    PropDeskError,
    SourceUnavailable,
    TransitionError,
)
from propdesk.middleware.request_id import RequestIdMiddleware
from propdesk.services.account_service import AccountService
from propdesk.services.auth_directory import AuthDirectory
from propdesk.services.backend_client import BackendClient
from propdesk.utils.logging import setup_logging

settings = GlobalConfig()

_ERROR_STATUS: dict[type[PropDeskError], int] = {
    TransitionError: 422,
    ChallengeNotFound: 404,
    SourceUnavailable: 503,
    MutationFailed: 502,
    BackendError: 502,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_level)
    logger = logging.getLogger(__name__)
    logger.info("Starting propdesk...")

    app.state.settings = settings
    sources = SourceRegistry.from_settings(settings)
    app.state.sources = sources
    app.state.account_service = AccountService(
        sources=sources,
        auth=AuthDirectory.from_settings(settings),
        backend=BackendClient.from_settings(settings),
        settings=settings,
    )

    yield

    logger.info("Shutting down propdesk...")
    await sources.dispose()


app = FastAPI(title="propdesk", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestIdMiddleware)


@app.exception_handler(PropDeskError)
async def propdesk_error_handler(request: Request, exc: PropDeskError):
    status_code = next(
        (code for cls, code in _ERROR_STATUS.items() if isinstance(exc, cls)), 500
    )
    if status_code >= 500:
        logging.getLogger(__name__).error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"success": False, "error": str(exc)})


app.include_router(health_router)
app.include_router(metrics_router)
app.include_router(admin_router)
app.include_router(dashboard_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.app_host, port=settings.app_port, log_level=settings.log_level.lower())
