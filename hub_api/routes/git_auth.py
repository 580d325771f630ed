import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse, Response

from hub_api.auth import login_by_email_and_password, read_email_and_password
from hub_api.errors import HubError, InternalError, InvalidOriginalUri, error_body, ok
from hub_api.naming import original_uri_owned_by

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["git"])

BASIC_REALM = 'Basic realm="Please enter your email and password"'


@router.get("/git_auth")
def git_auth(request: Request):
    """Sub-request target for the fronting git HTTP server.

    Status codes are the contract here, unlike the in-band errors of the JSON API:
    401 for missing or bad credentials, 403 when the requested repository is not
    owned by the caller.
    """
    authorization = request.headers.get("Authorization")
    if not authorization:
        return Response(status_code=status.HTTP_401_UNAUTHORIZED, headers={"WWW-Authenticate": BASIC_REALM})

    settings = request.app.state.settings
    try:
        email, password = read_email_and_password(authorization)
        with request.app.state.database.session() as db:
            login = login_by_email_and_password(db, settings, email, password)
    except InternalError as exc:
        return JSONResponse(error_body(exc), status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    except HubError as exc:
        logger.warning("git auth rejected, reason: %s", exc.reason)
        return JSONResponse(error_body(exc), status_code=status.HTTP_401_UNAUTHORIZED)

    original_uri = request.headers.get("X-Original-URI", "")
    if not original_uri_owned_by(original_uri, login):
        logger.warning("git auth forbidden, login: %s, original_uri: %s", login, original_uri)
        return JSONResponse(error_body(InvalidOriginalUri()), status_code=status.HTTP_403_FORBIDDEN)
    return JSONResponse(ok())
