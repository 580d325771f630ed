import logging
import time
from typing import Optional

import requests
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from hub_api.config import Settings, load_settings
from hub_api.db import Database
from hub_api.deployments import DeploymentDispatcher, build_http_session
from hub_api.errors import HubError, InvalidRequest, error_body
from hub_api.repositories import RepositoryProvisioner
from hub_api.routes import accounts, git_auth, health, projects, user_projects

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
VERIFY_EMAIL_PREFIX = "/api/v1/verify_email/"


def _validation_detail(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()) if item != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(parts)


def create_app(
    settings: Optional[Settings] = None,
    *,
    database: Optional[Database] = None,
    http_session: Optional[requests.Session] = None,
) -> FastAPI:
    settings = settings or load_settings()
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO), format=LOG_FORMAT)

    app = FastAPI(title="Hub API")
    app.state.settings = settings
    app.state.database = database or Database.from_settings(settings)
    app.state.provisioner = RepositoryProvisioner(
        settings.base_repo_dir,
        git_bin=settings.git_bin,
        owner=settings.repo_owner,
        group=settings.repo_group,
        redact=settings.secrets(),
    )
    app.state.dispatcher = DeploymentDispatcher(
        http_session or build_http_session(),
        settings.jenkins,
        settings.deployer,
        timeout=settings.ci_timeout_seconds,
    )

    @app.exception_handler(HubError)
    def handle_hub_error(request: Request, exc: HubError):
        status_code = exc.http_status if settings.http_error_status else 200
        return JSONResponse(error_body(exc), status_code=status_code)

    @app.exception_handler(RequestValidationError)
    def handle_validation_error(request: Request, exc: RequestValidationError):
        error = InvalidRequest(_validation_detail(exc))
        status_code = error.http_status if settings.http_error_status else 200
        return JSONResponse(error_body(error), status_code=status_code)

    @app.middleware("http")
    async def access_log(request: Request, call_next):
        started = time.monotonic()
        response = await call_next(request)
        elapsed_ms = (time.monotonic() - started) * 1000
        path = request.url.path
        if path.startswith(VERIFY_EMAIL_PREFIX):
            path = VERIFY_EMAIL_PREFIX + "***"
        logger.info("%s %s %s %.1fms", request.method, path, response.status_code, elapsed_ms)
        return response

    app.include_router(health.router)
    app.include_router(accounts.router)
    app.include_router(projects.router)
    app.include_router(git_auth.router)
    app.include_router(user_projects.router)
    return app
