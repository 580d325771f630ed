from typing import Any, Dict, Optional


class HubError(Exception):
    code = "internal-error"
    http_status = 500

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail
        super().__init__(self.reason)

    @property
    def reason(self) -> str:
        if self.detail:
            return f"{self.code}: {self.detail}"
        return self.code


class InternalError(HubError):
    code = "internal-error"
    http_status = 500


class InvalidToken(HubError):
    code = "invalid-token"
    http_status = 401


class InvalidEmailAndPassword(HubError):
    code = "invalid-email-and-password"
    http_status = 401


class AccountNotFound(HubError):
    code = "account-not-found"
    http_status = 401


class EmailNotVerified(HubError):
    code = "email-not-verified"
    http_status = 403


class EmailAlreadyExists(HubError):
    code = "email-already-exists"
    http_status = 409


class ProjectVersionAlreadyExists(HubError):
    code = "project-version-already-exists"
    http_status = 409


class InvalidOriginalUri(HubError):
    code = "invalid-original-uri"
    http_status = 403


class InvalidProjectName(HubError):
    code = "invalid-project-name"
    http_status = 422


class InvalidRequest(HubError):
    code = "invalid-request"
    http_status = 422


class Unauthorized(HubError):
    code = "unauthorized"
    http_status = 401


class DeployFailed(HubError):
    code = "failed-to-deploy-project"
    http_status = 502

    def __init__(self, repo_name: str, version: str):
        self.repo_name = repo_name
        self.version = version
        super().__init__(f"can not deploy {repo_name} version {version}")


def ok(**fields: Any) -> Dict[str, Any]:
    return {"status": "ok", **fields}


def error_body(error: HubError) -> Dict[str, Any]:
    return {"status": "error", "reason": error.reason}
