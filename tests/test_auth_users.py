def _register(client, *, username: str, email: str | None = None, password: str = "secret123"):
    return client.post(
        "/auth/register",
        json={
            "username": username,
            "email": email or f"{username}@example.com",
            "password": password,
            "name": username.title(),
        },
    )


def _auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _token_for(client, username: str) -> str:
    res = _register(client, username=username)
    assert res.status_code == 201, res.text
    # Tests authenticate with explicit bearer headers; drop the cookie so it cannot win.
    client.cookies.clear()
    return res.json()["access_token"]


def test_register_sets_cookie_and_current_user(test_context):
    client, _ = test_context

    res = _register(client, username="ada_owner")
    assert res.status_code == 201, res.text
    body = res.json()
    assert body["user"]["username"] == "ada_owner"
    assert body["user"]["email"] == "ada_owner@example.com"
    assert "hashed_password" not in body["user"]
    assert "password" not in body["user"]
    assert "auth_token" in res.cookies

    me = client.get("/auth/user")
    assert me.status_code == 200, me.text
    assert me.json()["id"] == body["user"]["id"]

    logout = client.post("/auth/logout")
    assert logout.status_code == 200, logout.text
    assert logout.json() == {"ok": True}

    after_logout = client.get("/auth/user")
    assert after_logout.status_code == 401
    assert after_logout.json()["error"]["code"] == "unauthorized"


def test_register_rejects_duplicates_and_short_password(test_context):
    client, _ = test_context
    assert _register(client, username="carver").status_code == 201
    client.cookies.clear()

    dup_username = _register(client, username="Carver", email="other@example.com")
    assert dup_username.status_code == 400
    assert dup_username.json()["error"]["message"] == "Username already exists"

    dup_email = _register(client, username="carver2", email="CARVER@example.com")
    assert dup_email.status_code == 400
    assert dup_email.json()["error"]["message"] == "Email already exists"

    short_password = _register(client, username="carver3", password="12345")
    assert short_password.status_code == 422
    fields = {item["field"] for item in short_password.json()["error"]["details"]}
    assert "password" in fields

    short_username = _register(client, username="ab")
    assert short_username.status_code == 422


def test_login_with_username_or_email(test_context):
    client, _ = test_context
    _token_for(client, "joiner")

    by_username = client.post("/auth/login", json={"username": "joiner", "password": "secret123"})
    assert by_username.status_code == 200, by_username.text
    assert by_username.json()["access_token"]
    assert "auth_token" in by_username.cookies
    client.cookies.clear()

    by_email = client.post(
        "/auth/login", json={"username": "JOINER@example.com", "password": "secret123"}
    )
    assert by_email.status_code == 200, by_email.text
    client.cookies.clear()

    bad = client.post("/auth/login", json={"username": "joiner", "password": "wrong-pass"})
    assert bad.status_code == 401
    assert bad.json()["error"]["message"] == "Invalid username or password"

    swagger = client.post("/auth/token", data={"username": "joiner", "password": "secret123"})
    assert swagger.status_code == 200, swagger.text
    me = client.get("/auth/user", headers=_auth_headers(swagger.json()["access_token"]))
    assert me.status_code == 200
    assert me.json()["username"] == "joiner"


def test_login_is_rate_limited_after_repeated_failures(test_context):
    client, _ = test_context
    _token_for(client, "turner")

    for _ in range(5):
        res = client.post("/auth/login", json={"username": "turner", "password": "nope-nope"})
        assert res.status_code == 401

    locked = client.post("/auth/login", json={"username": "turner", "password": "secret123"})
    assert locked.status_code == 429
    assert int(locked.headers["Retry-After"]) > 0
    assert locked.json()["error"]["code"] == "rate_limited"


def test_invalid_token_is_rejected(test_context):
    client, _ = test_context

    missing = client.get("/products")
    assert missing.status_code == 401
    assert missing.json()["error"]["message"] == "Not authenticated"

    garbage = client.get("/products", headers=_auth_headers("not-a-jwt"))
    assert garbage.status_code == 401


def test_users_list_and_own_profile_update(test_context):
    client, _ = test_context
    ada = _token_for(client, "ada_user")
    bob = _token_for(client, "bob_user")

    listing = client.get("/users", headers=_auth_headers(ada))
    assert listing.status_code == 200, listing.text
    items = listing.json()["items"]
    assert [item["username"] for item in items] == ["ada_user", "bob_user"]
    assert all("hashed_password" not in item for item in items)
    ada_id, bob_id = items[0]["id"], items[1]["id"]

    forbidden = client.patch(f"/users/{bob_id}", json={"name": "Hacked"}, headers=_auth_headers(ada))
    assert forbidden.status_code == 403
    assert forbidden.json()["error"]["code"] == "forbidden"

    taken = client.patch(f"/users/{ada_id}", json={"username": "BOB_USER"}, headers=_auth_headers(ada))
    assert taken.status_code == 400

    updated = client.patch(
        f"/users/{ada_id}",
        json={"name": "Ada Lovelace", "password": "new-secret", "profile_picture": ""},
        headers=_auth_headers(ada),
    )
    assert updated.status_code == 200, updated.text
    assert updated.json()["name"] == "Ada Lovelace"
    assert updated.json()["profile_picture"] is None

    old_login = client.post("/auth/login", json={"username": "ada_user", "password": "secret123"})
    assert old_login.status_code == 401
    new_login = client.post("/auth/login", json={"username": "ada_user", "password": "new-secret"})
    assert new_login.status_code == 200

    bad_url = client.patch(
        f"/users/{ada_id}", json={"profile_picture": "not a url"}, headers=_auth_headers(bob)
    )
    assert bad_url.status_code == 422
