import subprocess
from dataclasses import replace
from typing import Tuple
from unittest import mock

import pytest
import requests
from fastapi.testclient import TestClient
from sqlalchemy import select

from hub_api.config import DeployerConfig, JenkinsConfig, Settings
from hub_api.db import Database
from hub_api.main import create_app
from hub_api.models import Account, Base


@pytest.fixture
def settings(tmp_path) -> Settings:
    repo_dir = tmp_path / "repos"
    repo_dir.mkdir()
    return Settings(
        ip="127.0.0.1",
        port=8000,
        workers=1,
        base_domain="example.com",
        base_repo_dir=str(repo_dir),
        base_repo_domain="example.com",
        jwt_secret="test-jwt-secret",
        password_salt="test-salt",
        database_url=f"sqlite:///{tmp_path / 'hub.db'}",
        jenkins=JenkinsConfig(
            jenkins_api="https://ci.example.com",
            jenkins_api_user="ci-user",
            jenkins_api_token="ci-token-secret",
            job_name="build-project",
        ),
        deployer=DeployerConfig(
            deployer_api="https://deployer.example.com",
            deployer_api_user="deploy-user",
            deployer_api_password="deploy-password-secret",
        ),
        repo_owner="",
        repo_group="",
        internal_token="internal-secret",
    )


@pytest.fixture
def database(settings):
    db = Database.from_settings(settings)
    Base.metadata.create_all(db.engine)
    yield db
    db.dispose()


@pytest.fixture
def ci_response():
    response = mock.Mock(status_code=201)
    response.raise_for_status.return_value = None
    return response


@pytest.fixture
def http_session(ci_response):
    session = mock.Mock(spec=requests.Session)
    session.post.return_value = ci_response
    return session


@pytest.fixture
def make_client(database, http_session):
    def _make(settings: Settings, **overrides) -> TestClient:
        app = create_app(replace(settings, **overrides), database=database, http_session=http_session)
        return TestClient(app)

    return _make


@pytest.fixture
def client(make_client, settings) -> TestClient:
    return make_client(settings)


@pytest.fixture
def fake_git():
    """Stand-in for git: every command succeeds without touching the filesystem."""

    def _run(args, **kwargs):
        return subprocess.CompletedProcess(args, 0, stdout="", stderr="")

    with mock.patch("hub_api.repositories.subprocess.run", side_effect=_run) as run_mock:
        yield run_mock


def get_account(database: Database, email: str) -> Account:
    with database.session() as db:
        account = db.execute(select(Account).where(Account.email == email)).scalar_one()
        db.expunge(account)
        return account


def register(client: TestClient, database: Database, email: str, password: str, verify: bool = True) -> Tuple[str, str]:
    """Sign up, optionally verify, and log in. Returns (login, bearer token)."""
    response = client.post("/api/v1/signup", json={"email": email, "password": password})
    assert response.json() == {"status": "ok"}
    account = get_account(database, email)
    if verify:
        verified = client.get(f"/api/v1/verify_email/{account.email_verification_token}")
        assert verified.text == "Your email verified."
    response = client.post("/api/v1/login", json={"email": email, "password": password})
    body = response.json()
    assert body["status"] == "ok", body
    return account.login, body["token"]


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
