# purrfectcare/api/auth/test_auth_routes.py
from unittest.mock import MagicMock, patch

import jwt
import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from purrfectcare.api.auth.services import AuthService
from purrfectcare.core.errors import BadRequestError
from purrfectcare.core.security import verify_password

REGISTER_URL = '/api/auth/register'

def _register_payload(**overrides):
    payload = {
        "name": "Asha",
        "email": "asha@example.com",
        "password": "Secret123!",
        "confirmPassword": "Secret123!"
    }
    payload.update(overrides)
    return {k: v for k, v in payload.items() if v is not None}

@pytest.mark.parametrize("payload, message", [
    ({"name": "A", "email": "a@b.com", "confirmPassword": "x"}, "Password is required"),
    ({"name": "A", "email": "a@b.com", "password": "x"}, "Confirm Password is required"),
    ({"name": "A", "email": "a@b.com", "password": "x", "confirmPassword": "y"}, "Passwords do not match"),
    ({"name": "A", "password": "x", "confirmPassword": "x"}, "Email is required"),
    # 비밀번호 검사가 이메일 검사보다 먼저 수행됩니다.
    ({"name": "A", "confirmPassword": "x"}, "Password is required"),
    ({"name": "A", "password": "x", "confirmPassword": "y"}, "Passwords do not match"),
    ({"email": "a@b.com", "password": "x", "confirmPassword": "x"}, "Username is required"),
    ({"name": "   ", "email": "a@b.com", "password": "x", "confirmPassword": "x"}, "Username is required"),
])
def test_register_validation_precedence(client, mongo, payload, message):
    response = client.post(REGISTER_URL, json=payload)

    assert response.status_code == 400
    assert response.get_json()["message"] == message
    assert mongo.users.count_documents({}) == 0

def test_register_rejects_malformed_email(client):
    response = client.post(REGISTER_URL, json=_register_payload(email="not-an-email"))

    assert response.status_code == 400
    assert response.get_json()["message"] == "not-an-email is not a valid email address!"

def test_register_success_returns_token_without_password(client, mongo, app):
    response = client.post(REGISTER_URL, json=_register_payload())

    assert response.status_code == 201
    body = response.get_json()
    assert set(body.keys()) == {"_id", "name", "email", "authToken"}
    assert body["email"] == "asha@example.com"
    assert "authToken=" in response.headers.get("Set-Cookie", "")

    claims = jwt.decode(body["authToken"], app.config["JWT_SECRET_KEY"], algorithms=["HS256"])
    assert claims["sub"] == body["_id"]
    assert claims["email"] == "asha@example.com"

    stored = mongo.users.find_one({"_id": ObjectId(body["_id"])})
    assert stored["password"] != "Secret123!"
    assert verify_password("Secret123!", stored["password"])
    assert stored["roles"] == "USER"
    assert stored["is_verified"] is False

def test_register_duplicate_email(client, mongo):
    first = client.post(REGISTER_URL, json=_register_payload())
    second = client.post(REGISTER_URL, json=_register_payload(name="Other", email="ASHA@example.com"))

    assert first.status_code == 201
    assert second.status_code == 400
    assert second.get_json()["message"] == "User already exists"
    assert mongo.users.count_documents({"email": "asha@example.com"}) == 1

def test_register_duplicate_key_race_maps_to_user_exists():
    """조회 시점에는 없었지만 insert 시점에 고유 인덱스에 걸리는 경우."""
    mongo = MagicMock()
    mongo.users.find_one.return_value = None
    mongo.users.insert_one.side_effect = DuplicateKeyError("E11000 duplicate key error")
    service = AuthService(mongo=mongo, email_service=MagicMock())

    with pytest.raises(BadRequestError) as exc_info:
        service.register_user("Asha", "asha@example.com", "Secret123!")

    assert exc_info.value.message == "User already exists"
    mongo.users.insert_one.assert_called_once()

def test_register_survives_mail_failure(client, app):
    with patch.object(app.services['email'], 'send_verification_email', side_effect=RuntimeError("smtp down")):
        response = client.post(REGISTER_URL, json=_register_payload())

    assert response.status_code == 201

def test_login_flow(client, make_user):
    make_user(email="login@example.com", password="Password123!")

    assert client.post('/api/auth/login', json={"password": "x"}).get_json()["message"] == "Email is required."
    assert client.post('/api/auth/login', json={"email": "login@example.com"}).get_json()["message"] == "Password is required."

    unknown = client.post('/api/auth/login', json={"email": "nobody@example.com", "password": "x"})
    assert unknown.status_code == 400
    assert unknown.get_json()["message"] == "User not found"

    wrong = client.post('/api/auth/login', json={"email": "login@example.com", "password": "wrong"})
    assert wrong.get_json()["message"] == "Email or password is incorrect"

    ok = client.post('/api/auth/login', json={"email": "LOGIN@example.com", "password": "Password123!"})
    assert ok.status_code == 200
    body = ok.get_json()
    assert body["isVerified"] is True
    assert body["authToken"]
    assert "password" not in body

def test_logout_clears_cookie(client):
    response = client.post('/api/auth/logout')

    assert response.status_code == 200
    assert response.get_json() == {"message": "Logout successful"}
    assert "authToken=;" in response.headers.get("Set-Cookie", "")

def test_verify_email_with_link_and_reuse(client, app, mongo):
    with patch.object(app.services['email'], 'send_verification_email') as send_mail:
        client.post(REGISTER_URL, json=_register_payload())
    _, _, user_id, token, _ = send_mail.call_args.args

    bad = client.post(f'/api/auth/verify-email?userId={user_id}&token=wrong-token')
    assert bad.status_code == 400
    assert bad.get_json()["message"] == "Invalid or expired verification link."

    ok = client.post(f'/api/auth/verify-email?userId={user_id}&token={token}')
    assert ok.status_code == 200
    assert ok.get_json()["message"] == "Account verified successfully."
    assert mongo.users.find_one({"_id": ObjectId(user_id)})["is_verified"] is True

    again = client.post(f'/api/auth/verify-email?userId={user_id}&token={token}')
    assert again.get_json()["message"] == "This verification request has already been used."

def test_verify_email_with_otp(client, app):
    with patch.object(app.services['email'], 'send_verification_email') as send_mail:
        client.post(REGISTER_URL, json=_register_payload())
    otp = send_mail.call_args.args[4]

    response = client.post('/api/auth/verify-email', json={"email": "asha@example.com", "otp": otp})
    assert response.status_code == 200

def test_resend_verification(client, make_user):
    make_user(email="done@example.com", is_verified=True)
    make_user(email="pending@example.com", is_verified=False)

    assert client.post('/api/auth/resend-verification', json={"email": "ghost@example.com"}).status_code == 404
    verified = client.post('/api/auth/resend-verification', json={"email": "done@example.com"})
    assert verified.get_json()["message"] == "Account already verified"
    pending = client.post('/api/auth/resend-verification', json={"email": "pending@example.com"})
    assert pending.status_code == 200

def test_forgot_password_does_not_reveal_accounts(client, make_user):
    make_user(email="known@example.com")

    known = client.post('/api/auth/forgot-password', json={"email": "known@example.com"})
    unknown = client.post('/api/auth/forgot-password', json={"email": "unknown@example.com"})

    assert known.status_code == unknown.status_code == 200
    assert known.get_json() == unknown.get_json()

def test_reset_password_with_otp(client, app, make_user):
    make_user(email="reset@example.com", password="OldPass123!")
    with patch.object(app.services['email'], 'send_password_reset_email') as send_mail:
        client.post('/api/auth/forgot-password', json={"email": "reset@example.com"})
    otp = send_mail.call_args.args[4]

    wrong = client.post('/api/auth/verify-reset-otp', json={"email": "reset@example.com", "otp": "000000" if otp != "000000" else "111111"})
    assert wrong.get_json()["message"] == "Invalid or expired reset code."

    verified = client.post('/api/auth/verify-reset-otp', json={"email": "reset@example.com", "otp": otp})
    assert verified.status_code == 200
    link = verified.get_json()

    mismatch = client.post('/api/auth/reset-password', json={"password": "a", "confirmPassword": "b"})
    assert mismatch.get_json()["message"] == "Passwords do not match."

    reset = client.post(
        f'/api/auth/reset-password?userId={link["userId"]}&token={link["token"]}',
        json={"password": "NewPass123!", "confirmPassword": "NewPass123!"}
    )
    assert reset.status_code == 200
    assert reset.get_json()["message"] == "Password reset successfully."

    login = client.post('/api/auth/login', json={"email": "reset@example.com", "password": "NewPass123!"})
    assert login.status_code == 200

def test_protected_route_requires_token(client):
    response = client.get('/api/pets')

    assert response.status_code == 401
    assert response.get_json()["error"] == "User not authenticated. Please login first."

def test_invalid_token_is_rejected(client):
    response = client.get('/api/pets', headers={"Authorization": "Bearer not.a.jwt"})

    assert response.status_code == 401
    assert response.get_json()["error"] == "Invalid or expired token. Please login again."
