from typing import Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy.orm import Session

from hub_api.auth import require_internal_caller
from hub_api.catalog import insert_project
from hub_api.db import get_db
from hub_api.errors import ok
from hub_api.naming import validate_project_name

router = APIRouter(prefix="/api/v1", tags=["catalog"])


class UserProjectIn(BaseModel):
    login: str
    name: str
    version: str
    description: Optional[str] = None


@router.post("/user_projects", dependencies=[Depends(require_internal_caller)])
def insert_user_project(payload: UserProjectIn, request: Request, db: Session = Depends(get_db)):
    name = validate_project_name(payload.name, request.app.state.settings.project_name_max_length)
    insert_project(db, payload.login, name, payload.version, payload.description)
    return ok()
