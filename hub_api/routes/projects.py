from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy.orm import Session

from hub_api.auth import require_login
from hub_api.catalog import search_projects
from hub_api.config import Settings
from hub_api.db import get_db
from hub_api.errors import ok
from hub_api.hooks import UpdateHookParams
from hub_api.naming import http_url, repo_name, repo_url, validate_login, validate_project_name, ws_url

router = APIRouter(prefix="/api/v1", tags=["projects"])


class CreateProjectIn(BaseModel):
    project_name: str


class FindProjectIn(BaseModel):
    name: str


class InstallProjectIn(BaseModel):
    app_name: str
    login: str
    project_name: str
    version: str


@router.post("/projects")
def create_project(payload: CreateProjectIn, request: Request, login: str = Depends(require_login)):
    settings: Settings = request.app.state.settings
    project_name = validate_project_name(payload.project_name, settings.project_name_max_length)
    hook_params = UpdateHookParams.build(settings.jenkins, settings.deployer, login, project_name)
    result = request.app.state.provisioner.provision(login, project_name, hook_params)
    return ok(
        payload={
            "repository_created": result.repository_created,
            "repo_url": repo_url(result.repo_name, settings.base_repo_domain),
            "http_url": http_url(result.repo_name, settings.base_domain),
            "ws_url": ws_url(result.repo_name, settings.base_domain),
        }
    )


@router.post("/find")
def find_project(payload: FindProjectIn, login: str = Depends(require_login), db: Session = Depends(get_db)):
    return ok(payload=search_projects(db, payload.name))


@router.post("/install")
def install_project(payload: InstallProjectIn, request: Request, login: str = Depends(require_login)):
    settings: Settings = request.app.state.settings
    source_login = validate_login(payload.login)
    app_name = validate_project_name(payload.app_name, settings.project_name_max_length)
    validate_project_name(payload.project_name, settings.project_name_max_length)
    src_repo_name = repo_name(source_login, payload.project_name)
    dst_repo_name = repo_name(login, app_name)
    request.app.state.dispatcher.deploy(src_repo_name, dst_repo_name, payload.version)
    return ok(
        payload={
            "http_url": http_url(dst_repo_name, settings.base_domain),
            "ws_url": ws_url(dst_repo_name, settings.base_domain),
        }
    )
