from conftest import PASSWORD, auth
from karnya.core.security import Identity


def register_body(email, **overrides):
    body = {
        "firstName": "Alice",
        "lastName": "Liddell",
        "email": email,
        "password": PASSWORD,
        "userType": "donor",
    }
    body.update(overrides)
    return body


def test_register_returns_token_and_camel_case_user(client):
    r = client.post("/api/auth/register", json=register_body("alice@example.com", phone="555-0100"))
    assert r.status_code == 201, r.text
    data = r.json()
    assert data["success"] is True
    assert data["token"]
    user = data["user"]
    assert user["email"] == "alice@example.com"
    assert user["firstName"] == "Alice"
    assert user["userType"] == "donor"
    assert user["role"] == "user"
    assert user["isVerified"] is False
    assert "password" not in user
    assert "passwordHash" not in user
    assert "verificationToken" not in user


def test_register_duplicate_email(client):
    assert client.post("/api/auth/register", json=register_body("alice@example.com")).status_code == 201
    r = client.post("/api/auth/register", json=register_body("alice@example.com"))
    assert r.status_code == 400
    assert r.json() == {"message": "User already exists"}


def test_register_validation_errors_name_fields(client):
    r = client.post(
        "/api/auth/register",
        json=register_body("not-an-email", password="123", userType="pirate"),
    )
    assert r.status_code == 400
    data = r.json()
    assert data["message"] == "Validation failed"
    fields = {e["field"] for e in data["errors"]}
    assert {"email", "password", "userType"} <= fields
    assert all(e["message"] for e in data["errors"])


def test_admin_user_type_cannot_escalate(client, signup, mailer):
    signup("victim@example.com")
    r = client.post("/api/auth/register", json=register_body("mallory@example.com", userType="admin"))
    assert r.json()["user"]["role"] == "user"
    mallory_id = r.json()["user"]["id"]
    client.post("/api/auth/verify-email", json={"token": mailer.verifications["mallory@example.com"]})
    token = client.post(
        "/api/auth/login", json={"email": "mallory@example.com", "password": PASSWORD}
    ).json()["token"]

    listing = client.get("/api/admin/users", headers=auth(token))
    assert listing.status_code == 403

    promote = client.patch(
        f"/api/admin/users/{mallory_id}/role", json={"role": "super_admin"}, headers=auth(token)
    )
    assert promote.status_code == 403
    assert client.get("/api/auth/me", headers=auth(token)).json()["role"] == "user"


def test_update_profile(client, signup):
    token = signup("alice@example.com")

    r = client.put(
        "/api/auth/me",
        json={
            "firstName": "Alicia",
            "phone": "555-0199",
            "email": "mallory@example.com",
            "password": "hijacked",
            "isVerified": False,
            "role": "super_admin",
        },
        headers=auth(token),
    )

    assert r.status_code == 200, r.text
    user = r.json()
    assert user["firstName"] == "Alicia"
    assert user["lastName"] == "User"
    assert user["phone"] == "555-0199"
    assert user["email"] == "alice@example.com"
    assert user["isVerified"] is True
    assert user["role"] == "user"
    assert client.post("/api/auth/login", json={"email": "alice@example.com", "password": PASSWORD}).status_code == 200


def test_update_profile_rejects_null_name(client, signup):
    token = signup("alice@example.com")
    r = client.put("/api/auth/me", json={"firstName": None}, headers=auth(token))
    assert r.status_code == 400
    assert r.json()["errors"][0]["field"] == "firstName"


def test_update_profile_requires_token(client):
    assert client.put("/api/auth/me", json={"firstName": "X"}).status_code == 401


def test_unverified_login_is_refused_with_hint(client):
    user_id = client.post("/api/auth/register", json=register_body("alice@example.com")).json()["user"]["id"]

    r = client.post("/api/auth/login", json={"email": "alice@example.com", "password": PASSWORD})

    assert r.status_code == 400
    assert r.json() == {
        "message": "Please verify your email before logging in",
        "requiresVerification": True,
        "userId": user_id,
    }


def test_verify_then_login_then_me(client, mailer):
    client.post("/api/auth/register", json=register_body("alice@example.com"))

    r = client.post("/api/auth/verify-email", json={"token": mailer.verifications["alice@example.com"]})
    assert r.status_code == 200
    assert r.json()["message"] == "Email verified successfully"
    assert r.json()["user"]["isVerified"] is True

    r = client.post("/api/auth/login", json={"email": "alice@example.com", "password": PASSWORD})
    assert r.status_code == 200
    token = r.json()["token"]

    me = client.get("/api/auth/me", headers=auth(token))
    assert me.status_code == 200
    assert me.json()["email"] == "alice@example.com"


def test_wrong_password_and_unknown_email_look_the_same(client, signup):
    signup("alice@example.com")
    wrong = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "nope"})
    unknown = client.post("/api/auth/login", json={"email": "bob@example.com", "password": PASSWORD})
    assert wrong.status_code == unknown.status_code == 400
    assert wrong.json() == unknown.json() == {"message": "Invalid credentials"}


def test_verify_email_bad_token(client):
    r = client.post("/api/auth/verify-email", json={"token": "nope"})
    assert r.status_code == 400
    assert r.json() == {"message": "Invalid verification token"}


def test_me_without_token(client):
    r = client.get("/api/auth/me")
    assert r.status_code == 401
    assert r.json() == {"message": "No token, authorization denied"}


def test_me_with_garbage_token(client):
    r = client.get("/api/auth/me", headers=auth("garbage"))
    assert r.status_code == 401
    assert r.json() == {"message": "Token is not valid"}


def test_me_with_token_for_missing_account(client, tokens):
    token = tokens.issue_session_token(Identity(999, "ghost@example.com", "user"))
    r = client.get("/api/auth/me", headers=auth(token))
    assert r.status_code == 401
    assert r.json() == {"message": "Token is not valid"}


def test_forgot_and_reset_password(client, signup, mailer):
    signup("alice@example.com")

    r = client.post("/api/auth/forgot-password", json={"email": "alice@example.com"})
    assert r.status_code == 200
    assert r.json() == {"message": "Password reset email sent"}

    token = mailer.resets["alice@example.com"]
    r = client.put(f"/api/auth/reset-password/{token}", json={"password": "brandnew"})
    assert r.status_code == 200
    assert r.json() == {"message": "Password reset successful"}

    again = client.put(f"/api/auth/reset-password/{token}", json={"password": "another1"})
    assert again.status_code == 400
    assert again.json() == {"message": "Invalid or expired token"}

    assert client.post("/api/auth/login", json={"email": "alice@example.com", "password": "brandnew"}).status_code == 200
    assert client.post("/api/auth/login", json={"email": "alice@example.com", "password": PASSWORD}).status_code == 400


def test_forgot_password_unknown_email(client):
    r = client.post("/api/auth/forgot-password", json={"email": "ghost@example.com"})
    assert r.status_code == 404
    assert r.json() == {"message": "User not found"}


def test_reset_password_too_short(client):
    r = client.put("/api/auth/reset-password/whatever", json={"password": "123"})
    assert r.status_code == 400
    assert r.json()["errors"][0]["field"] == "password"


def test_resend_verification(client, mailer):
    client.post("/api/auth/register", json=register_body("alice@example.com"))
    first = mailer.verifications["alice@example.com"]

    r = client.post("/api/auth/resend-verification", json={"email": "alice@example.com"})
    assert r.status_code == 200
    assert r.json() == {"message": "Verification email sent"}
    assert mailer.verifications["alice@example.com"] != first

    client.post("/api/auth/verify-email", json={"token": mailer.verifications["alice@example.com"]})
    r = client.post("/api/auth/resend-verification", json={"email": "alice@example.com"})
    assert r.status_code == 400
    assert r.json() == {"message": "Email is already verified"}


def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}
