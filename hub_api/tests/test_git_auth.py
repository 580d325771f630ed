import base64

from hub_api.tests.conftest import register


def basic(email, password):
    raw = f"{email}:{password}".encode("utf-8")
    return "Basic " + base64.b64encode(raw).decode("ascii")


def _git_auth(client, authorization=None, original_uri=None):
    headers = {}
    if authorization is not None:
        headers["Authorization"] = authorization
    if original_uri is not None:
        headers["X-Original-URI"] = original_uri
    return client.get("/api/v1/git_auth", headers=headers)


def test_missing_credentials_challenges(client):
    resp = _git_auth(client)
    assert resp.status_code == 401
    assert resp.headers["WWW-Authenticate"] == 'Basic realm="Please enter your email and password"'


def test_malformed_basic_header(client):
    for header in ("Basic !!!", "Bearer abc", "Basic " + base64.b64encode(b"no-colon").decode("ascii")):
        resp = _git_auth(client, header, "/x-hello.git")
        assert resp.status_code == 401
        assert resp.json() == {"status": "error", "reason": "invalid-email-and-password"}


def test_wrong_password(client, database):
    login, _ = register(client, database, "a@example.com", "hunter22")
    resp = _git_auth(client, basic("a@example.com", "wrong-password"), f"/{login}-hello.git/info/refs")
    assert resp.status_code == 401
    assert resp.json() == {"status": "error", "reason": "account-not-found"}


def test_short_password_is_rejected_before_lookup(client, database):
    login, _ = register(client, database, "a@example.com", "hunter22")
    resp = _git_auth(client, basic("a@example.com", "short"), f"/{login}-hello.git/info/refs")
    assert resp.status_code == 401
    assert resp.json() == {"status": "error", "reason": "invalid-email-and-password"}


def test_unverified_account(client, database):
    login, _ = register(client, database, "a@example.com", "hunter22", verify=False)
    resp = _git_auth(client, basic("a@example.com", "hunter22"), f"/{login}-hello.git/info/refs")
    assert resp.status_code == 401
    assert resp.json() == {"status": "error", "reason": "email-not-verified"}


def test_owner_is_allowed(client, database):
    login, _ = register(client, database, "a@example.com", "hunter22")
    resp = _git_auth(
        client,
        basic("a@example.com", "hunter22"),
        f"/{login}-hello.git/info/refs?service=git-receive-pack",
    )
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_other_users_repository_is_forbidden(client, database):
    register(client, database, "a@example.com", "hunter22")
    other_login, _ = register(client, database, "b@example.com", "hunter22")
    resp = _git_auth(client, basic("a@example.com", "hunter22"), f"/{other_login}-hello.git/info/refs")
    assert resp.status_code == 403
    assert resp.json() == {"status": "error", "reason": "invalid-original-uri"}


def test_missing_original_uri_is_forbidden(client, database):
    register(client, database, "a@example.com", "hunter22")
    resp = _git_auth(client, basic("a@example.com", "hunter22"))
    assert resp.status_code == 403


def test_password_may_contain_colon(client, database):
    login, _ = register(client, database, "a@example.com", "pass:word:22")
    resp = _git_auth(client, basic("a@example.com", "pass:word:22"), f"/{login}-hello.git")
    assert resp.status_code == 200
