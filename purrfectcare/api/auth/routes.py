# purrfectcare/api/auth/routes.py

import logging
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import set_access_cookies, unset_jwt_cookies
from marshmallow import ValidationError

from purrfectcare.core.errors import ServiceError, error_response
from purrfectcare.core.security import issue_auth_token
from .schemas import RegisterSchema, EmailRequestSchema, AuthUserResponseSchema

auth_bp = Blueprint('auth_bp', __name__)

def _message(text: str, status: int = 400):
    return jsonify({"message": text}), status

def _first_error(err: ValidationError) -> str:
    """marshmallow 오류 중 첫 번째 메시지만 꺼냅니다. 인증 API는 {message} 한 줄로 응답합니다."""
    for messages in err.messages.values():
        if isinstance(messages, list) and messages:
            return str(messages[0])
        return str(messages)
    return "Invalid request"


@auth_bp.route('/register', methods=['POST'])
def register():
    """
    회원가입.
    필수값 검사 순서: password → confirmPassword → 일치 여부 → email.
    성공 시 authToken 쿠키를 설정하고 {_id, name, email, authToken}만 반환합니다.
    """
    data = request.get_json(silent=True) or {}

    if not data.get('password'):
        return _message("Password is required")
    if not data.get('confirmPassword'):
        return _message("Confirm Password is required")
    if data['password'] != data['confirmPassword']:
        return _message("Passwords do not match")
    if not data.get('email'):
        return _message("Email is required")

    auth_service = current_app.services['auth']
    try:
        validated = RegisterSchema().load(data)
        user = auth_service.register_user(validated['name'], validated['email'], validated['password'])
    except ValidationError as err:
        return _message(_first_error(err))
    except ServiceError as e:
        return error_response(e, key="message")

    auth_token = issue_auth_token({"_id": user.id, "email": user.email, "roles": user.roles})
    response = jsonify({**user.public_dict(), "authToken": auth_token})
    set_access_cookies(response, auth_token)
    return response, 201


@auth_bp.route('/login', methods=['POST'])
def login():
    """이메일/비밀번호 로그인. 실패 사유는 모두 400 {message}로 응답합니다."""
    data = request.get_json(silent=True)
    if not data:
        return _message("Required data is missing.")
    if not data.get('email'):
        return _message("Email is required.")
    if not data.get('password'):
        return _message("Password is required.")

    auth_service = current_app.services['auth']
    try:
        user = auth_service.login(data['email'], data['password'])
    except ServiceError as e:
        return error_response(e, key="message")

    auth_token = issue_auth_token({"_id": user.id, "email": user.email, "roles": user.roles})
    body = AuthUserResponseSchema().dump(user)
    body['authToken'] = auth_token
    response = jsonify(body)
    set_access_cookies(response, auth_token)
    return response, 200


@auth_bp.route('/logout', methods=['POST'])
def logout():
    """세션 쿠키를 제거합니다. 토큰 자체는 만료 시까지 유효합니다."""
    response = jsonify({"message": "Logout successful"})
    unset_jwt_cookies(response)
    return response, 200


@auth_bp.route('/forgot-password', methods=['POST'])
def forgot_password():
    try:
        data = EmailRequestSchema().load(request.get_json(silent=True) or {})
        result = current_app.services['auth'].forgot_password(data['email'])
        return jsonify(result), 200
    except ValidationError as err:
        return _message(_first_error(err))


@auth_bp.route('/verify-reset-otp', methods=['POST'])
def verify_reset_otp():
    data = request.get_json(silent=True) or {}
    if not data.get('email'):
        return _message("Email address is required.")
    if not data.get('otp'):
        return _message("Reset code is required.")

    try:
        result = current_app.services['auth'].verify_reset_otp(data['email'], data['otp'])
        return jsonify(result), 200
    except ServiceError as e:
        return error_response(e, key="message")


@auth_bp.route('/reset-password', methods=['POST'])
def reset_password():
    """
    비밀번호 재설정. 메일 링크(?userId&token) 또는 본문의 {email, otp} 중 하나로 본인을 확인합니다.
    """
    data = request.get_json(silent=True) or {}
    user_id = request.args.get('userId')
    token = request.args.get('token')

    if not data.get('password'):
        return _message("Password is required.")
    if not data.get('confirmPassword'):
        return _message("Confirm password is required.")
    if data['password'] != data['confirmPassword']:
        return _message("Passwords do not match.")
    has_link_params = user_id and token
    has_otp_params = data.get('email') and data.get('otp')
    if not has_link_params and not has_otp_params:
        return _message("Reset token or code with email is required.")

    try:
        if has_link_params:
            result = current_app.services['auth'].reset_password(data['password'], user_id=user_id, token=token)
        else:
            result = current_app.services['auth'].reset_password(
                data['password'], email=data['email'], otp=data['otp']
            )
        return jsonify(result), 200
    except ServiceError as e:
        return error_response(e, key="message")


@auth_bp.route('/verify-email', methods=['POST'])
def verify_email():
    """이메일 인증. 링크(?userId&token) 또는 본문의 {email, otp}를 받습니다."""
    data = request.get_json(silent=True) or {}
    user_id = request.args.get('userId')
    token = request.args.get('token')
    email = data.get('email')
    otp = data.get('otp')

    if not user_id and not email:
        return _message("User ID or email is required for verification.")
    if not token and not otp:
        return _message("Verification token or code is required.")

    try:
        result = current_app.services['auth'].verify_account(user_id=user_id, token=token, email=email, otp=otp)
        return jsonify(result), 200
    except ServiceError as e:
        return error_response(e, key="message")


@auth_bp.route('/resend-verification', methods=['POST'])
def resend_verification():
    try:
        data = EmailRequestSchema().load(request.get_json(silent=True) or {})
        result = current_app.services['auth'].resend_verification(data['email'])
        return jsonify(result), 200
    except ValidationError as err:
        return _message(_first_error(err))
    except ServiceError as e:
        logging.info(f"Resend verification rejected: {e.message}")
        return error_response(e, key="message")
