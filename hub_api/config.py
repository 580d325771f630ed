import os
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional


class ConfigError(RuntimeError):
    pass


REQUIRED_ENV = [
    "HUB_IP",
    "HUB_PORT",
    "HUB_WORKERS",
    "HUB_BASE_DOMAIN",
    "HUB_BASE_REPO_DIR",
    "HUB_BASE_REPO_DOMAIN",
    "HUB_JWT_SECRET",
    "HUB_PASSWORD_SALT",
    "DATABASE_URL",
    "JENKINS_API",
    "JENKINS_API_USER",
    "JENKINS_API_TOKEN",
    "JENKINS_JOB_NAME",
    "DEPLOYER_API",
    "DEPLOYER_API_USER",
    "DEPLOYER_API_PASSWORD",
]

PASSWORD_SCHEMES = {"legacy", "bcrypt"}


@dataclass(frozen=True)
class JenkinsConfig:
    jenkins_api: str
    jenkins_api_user: str
    jenkins_api_token: str
    job_name: str


@dataclass(frozen=True)
class DeployerConfig:
    deployer_api: str
    deployer_api_user: str
    deployer_api_password: str


@dataclass(frozen=True)
class Settings:
    ip: str
    port: int
    workers: int
    base_domain: str
    base_repo_dir: str
    base_repo_domain: str
    jwt_secret: str
    password_salt: str
    database_url: str
    jenkins: JenkinsConfig
    deployer: DeployerConfig
    log_level: str = "INFO"
    token_ttl_hours: int = 24
    verification_ttl_hours: int = 72
    project_name_max_length: int = 40
    repo_owner: str = "service"
    repo_group: str = "www-data"
    git_bin: str = "git"
    ci_timeout_seconds: int = 10
    db_pool_size: int = 5
    db_max_overflow: int = 10
    internal_token: str = ""
    http_error_status: bool = False
    password_scheme: str = "legacy"

    def secrets(self) -> List[str]:
        """Values that must never reach a log line."""
        values = [
            self.jwt_secret,
            self.password_salt,
            self.jenkins.jenkins_api_token,
            self.deployer.deployer_api_password,
            self.internal_token,
        ]
        return [value for value in values if value]


def normalize_database_url(url: str) -> str:
    if url.startswith("postgres://"):
        return "postgresql+psycopg://" + url[len("postgres://") :]
    if url.startswith("postgresql://"):
        return "postgresql+psycopg://" + url[len("postgresql://") :]
    return url


def _int(env: Mapping[str, str], name: str, default: Optional[int] = None) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        if default is None:
            raise ConfigError(f"Missing required environment variable: {name}")
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {value}")
    return value


def _bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name, "").strip().lower()
    if not raw:
        return default
    if raw in {"1", "true", "yes", "on"}:
        return True
    if raw in {"0", "false", "no", "off"}:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    env: Mapping[str, str] = os.environ if environ is None else environ
    values: Dict[str, str] = {name: env.get(name, "").strip() for name in REQUIRED_ENV}
    missing = [name for name, value in values.items() if not value]
    if missing:
        raise ConfigError(f"Missing required environment variables: {', '.join(missing)}")

    password_scheme = env.get("HUB_PASSWORD_SCHEME", "legacy").strip().lower() or "legacy"
    if password_scheme not in PASSWORD_SCHEMES:
        raise ConfigError(f"HUB_PASSWORD_SCHEME must be one of {sorted(PASSWORD_SCHEMES)}, got {password_scheme!r}")

    return Settings(
        ip=values["HUB_IP"],
        port=_int(env, "HUB_PORT"),
        workers=_int(env, "HUB_WORKERS"),
        base_domain=values["HUB_BASE_DOMAIN"],
        base_repo_dir=values["HUB_BASE_REPO_DIR"],
        base_repo_domain=values["HUB_BASE_REPO_DOMAIN"],
        jwt_secret=values["HUB_JWT_SECRET"],
        password_salt=values["HUB_PASSWORD_SALT"],
        database_url=normalize_database_url(values["DATABASE_URL"]),
        jenkins=JenkinsConfig(
            jenkins_api=values["JENKINS_API"].rstrip("/"),
            jenkins_api_user=values["JENKINS_API_USER"],
            jenkins_api_token=values["JENKINS_API_TOKEN"],
            job_name=values["JENKINS_JOB_NAME"],
        ),
        deployer=DeployerConfig(
            deployer_api=values["DEPLOYER_API"].rstrip("/"),
            deployer_api_user=values["DEPLOYER_API_USER"],
            deployer_api_password=values["DEPLOYER_API_PASSWORD"],
        ),
        log_level=env.get("HUB_LOG_LEVEL", "INFO").strip().upper() or "INFO",
        token_ttl_hours=_int(env, "HUB_TOKEN_TTL_HOURS", 24),
        verification_ttl_hours=_int(env, "HUB_VERIFICATION_TTL_HOURS", 72),
        project_name_max_length=_int(env, "HUB_PROJECT_NAME_MAX_LENGTH", 40),
        repo_owner=env.get("HUB_REPO_OWNER", "service").strip(),
        repo_group=env.get("HUB_REPO_GROUP", "www-data").strip(),
        git_bin=env.get("HUB_GIT_BIN", "git").strip() or "git",
        ci_timeout_seconds=_int(env, "HUB_CI_TIMEOUT_SECONDS", 10),
        db_pool_size=_int(env, "HUB_DB_POOL_SIZE", 5),
        db_max_overflow=_int(env, "HUB_DB_MAX_OVERFLOW", 10),
        internal_token=env.get("HUB_INTERNAL_TOKEN", "").strip(),
        http_error_status=_bool(env, "HUB_HTTP_ERROR_STATUS", False),
        password_scheme=password_scheme,
    )
