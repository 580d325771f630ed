import pytest

from hub_api.config import REQUIRED_ENV, ConfigError, load_settings, normalize_database_url

BASE_ENV = {
    "HUB_IP": "0.0.0.0",
    "HUB_PORT": "8080",
    "HUB_WORKERS": "4",
    "HUB_BASE_DOMAIN": "example.com",
    "HUB_BASE_REPO_DIR": "/srv/git",
    "HUB_BASE_REPO_DOMAIN": "example.com",
    "HUB_JWT_SECRET": "jwt-secret",
    "HUB_PASSWORD_SALT": "salt",
    "DATABASE_URL": "postgres://hub:hub@db:5432/hub",
    "JENKINS_API": "https://ci.example.com/",
    "JENKINS_API_USER": "ci",
    "JENKINS_API_TOKEN": "ci-token",
    "JENKINS_JOB_NAME": "build-project",
    "DEPLOYER_API": "https://deployer.example.com/",
    "DEPLOYER_API_USER": "deployer",
    "DEPLOYER_API_PASSWORD": "deployer-password",
}


def test_load_settings_with_defaults():
    settings = load_settings(BASE_ENV)
    assert settings.port == 8080
    assert settings.workers == 4
    assert settings.database_url == "postgresql+psycopg://hub:hub@db:5432/hub"
    assert settings.jenkins.jenkins_api == "https://ci.example.com"
    assert settings.deployer.deployer_api == "https://deployer.example.com"
    assert settings.token_ttl_hours == 24
    assert settings.project_name_max_length == 40
    assert settings.repo_owner == "service"
    assert settings.repo_group == "www-data"
    assert settings.http_error_status is False
    assert settings.password_scheme == "legacy"
    assert settings.internal_token == ""


def test_missing_variables_are_all_reported():
    env = dict(BASE_ENV)
    del env["HUB_JWT_SECRET"]
    env["JENKINS_API_TOKEN"] = "  "
    with pytest.raises(ConfigError) as excinfo:
        load_settings(env)
    message = str(excinfo.value)
    assert "HUB_JWT_SECRET" in message
    assert "JENKINS_API_TOKEN" in message


def test_empty_environment_reports_every_required_name():
    with pytest.raises(ConfigError) as excinfo:
        load_settings({})
    for name in REQUIRED_ENV:
        assert name in str(excinfo.value)


@pytest.mark.parametrize("value", ["abc", "0", "-1"])
def test_bad_port_is_rejected(value):
    with pytest.raises(ConfigError):
        load_settings({**BASE_ENV, "HUB_PORT": value})


def test_optional_overrides():
    settings = load_settings(
        {
            **BASE_ENV,
            "HUB_TOKEN_TTL_HOURS": "2",
            "HUB_HTTP_ERROR_STATUS": "true",
            "HUB_PASSWORD_SCHEME": "bcrypt",
            "HUB_INTERNAL_TOKEN": "internal",
            "HUB_LOG_LEVEL": "debug",
        }
    )
    assert settings.token_ttl_hours == 2
    assert settings.http_error_status is True
    assert settings.password_scheme == "bcrypt"
    assert settings.log_level == "DEBUG"
    assert "internal" in settings.secrets()
    assert "ci-token" in settings.secrets()


def test_unknown_password_scheme_is_rejected():
    with pytest.raises(ConfigError):
        load_settings({**BASE_ENV, "HUB_PASSWORD_SCHEME": "md5"})


def test_bad_boolean_is_rejected():
    with pytest.raises(ConfigError):
        load_settings({**BASE_ENV, "HUB_HTTP_ERROR_STATUS": "maybe"})


def test_normalize_database_url_leaves_sqlite_alone():
    assert normalize_database_url("sqlite:///hub.db") == "sqlite:///hub.db"
    assert normalize_database_url("postgresql://h/db") == "postgresql+psycopg://h/db"
