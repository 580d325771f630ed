from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from hub_api import accounts
from hub_api.db import get_db
from hub_api.errors import ok

router = APIRouter(prefix="/api/v1", tags=["accounts"])


class CredentialsIn(BaseModel):
    email: str
    password: str


@router.post("/signup")
def signup(payload: CredentialsIn, request: Request, db: Session = Depends(get_db)):
    accounts.signup(db, request.app.state.settings, payload.email, payload.password)
    return ok()


@router.post("/login")
def login(payload: CredentialsIn, request: Request, db: Session = Depends(get_db)):
    token = accounts.login(db, request.app.state.settings, payload.email, payload.password)
    return ok(token=token)


@router.get("/verify_email/{token}", response_class=PlainTextResponse)
def verify_email(token: str, db: Session = Depends(get_db)):
    return accounts.verify_email(db, token)
