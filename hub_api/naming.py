import re
import secrets
import string

from hub_api.errors import InvalidProjectName, InvalidRequest

PROJECT_NAME_ALPHABET = frozenset(string.ascii_lowercase + string.digits + "-")
LOGIN_LENGTH = 16
LOGIN_PATTERN = re.compile(r"[a-z][a-z0-9]{%d}" % (LOGIN_LENGTH - 1))


def generate_login() -> str:
    """Random account login: a lowercase letter followed by [a-z0-9], never containing '-'."""
    alphabet = string.ascii_lowercase + string.digits
    return secrets.choice(string.ascii_lowercase) + "".join(
        secrets.choice(alphabet) for _ in range(LOGIN_LENGTH - 1)
    )


def validate_login(login: str) -> str:
    if not LOGIN_PATTERN.fullmatch(login):
        raise InvalidRequest("login is not a valid account login")
    return login


def validate_project_name(name: str, max_length: int = 40) -> str:
    if not name:
        raise InvalidProjectName("project name is empty")
    if len(name) > max_length:
        raise InvalidProjectName(f"project name is longer than {max_length} characters")
    disallowed = sorted({ch for ch in name if ch not in PROJECT_NAME_ALPHABET})
    if disallowed:
        shown = ", ".join(repr(ch) for ch in disallowed)
        raise InvalidProjectName(
            f"project name contains disallowed characters: {shown} (allowed: a-z, 0-9, '-')"
        )
    if name.startswith("-") or name.endswith("-"):
        raise InvalidProjectName("project name must not start or end with '-'")
    if "--" in name:
        raise InvalidProjectName("project name must not contain consecutive '-'")
    return name


def repo_name(login: str, project_name: str) -> str:
    return f"{login}-{project_name}"


def repo_url(name: str, base_repo_domain: str) -> str:
    return f"https://git.{base_repo_domain}/{name}.git"


def http_url(name: str, base_domain: str) -> str:
    return f"https://{name}-rpc.{base_domain}"


def ws_url(name: str, base_domain: str) -> str:
    return f"wss://{name}.{base_domain}"


def original_uri_owned_by(original_uri: str, login: str) -> bool:
    """True when the first path segment of a git request URI starts with '<login>-'."""
    if not login or not original_uri.startswith("/"):
        return False
    path = original_uri.split("?", 1)[0].split("#", 1)[0]
    segments = path.split("/")
    if ".." in segments:
        return False
    first = segments[1] if len(segments) > 1 else ""
    return first.startswith(f"{login}-")
